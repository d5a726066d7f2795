"""Confidence bookkeeping and the requires-confirmation gate."""

from __future__ import annotations

from collections.abc import Mapping

from .models import (
    Confidence,
    Draft,
    DraftField,
    ExtractionMetadata,
    ImportResult,
    ImportSignals,
    ProviderType,
)


# Location-critical fields; category is deliberately cheap to fix later.
GATED_FIELDS: tuple[DraftField, ...] = (
    DraftField.NAME,
    DraftField.CITY,
    DraftField.COUNTRY,
    DraftField.COORDINATES,
)


def requires_confirmation(levels: Mapping[DraftField, Confidence]) -> bool:
    """True unless every gated field is ``HIGH``."""
    return any(
        levels.get(field, Confidence.NONE) < Confidence.HIGH for field in GATED_FIELDS
    )


def regate(result: ImportResult) -> ImportResult:
    """Recompute ``requires_confirmation`` after a stage changed confidence."""
    meta = result.meta
    gate = meta.confirmation_forced or requires_confirmation(meta.confidence)
    if gate == meta.requires_confirmation:
        return result
    return result.model_copy(
        update={"meta": meta.model_copy(update={"requires_confirmation": gate})}
    )


def is_eligible(level: Confidence) -> bool:
    """Whether an enrichment stage may fill a field at this tier."""
    return not level.is_trusted


def normalize_levels(
    draft: Draft, levels: Mapping[DraftField, Confidence]
) -> dict[DraftField, Confidence]:
    """Pin every unset field to ``NONE`` so labels never outrank values."""
    normalized: dict[DraftField, Confidence] = {}
    for field in DraftField:
        if draft.value_of(field) is None:
            normalized[field] = Confidence.NONE
        else:
            normalized[field] = levels.get(field, Confidence.LOW)
    return normalized


def downgrade_levels(
    levels: Mapping[DraftField, Confidence],
) -> dict[DraftField, Confidence]:
    return {field: level.downgraded() for field, level in levels.items()}


def build_result(
    *,
    provider: ProviderType,
    method: str,
    draft: Draft,
    levels: Mapping[DraftField, Confidence],
    warnings: tuple[str, ...] | list[str] = (),
    signals: ImportSignals | None = None,
    evidence: Mapping[DraftField, tuple[str, ...]] | None = None,
    force_confirmation: bool = False,
) -> ImportResult:
    """Assemble a gated result the way every strategy hands it back."""
    meta = ExtractionMetadata(
        provider=provider,
        method=method,
        confidence=normalize_levels(draft, levels),
        confirmation_forced=force_confirmation,
        warnings=tuple(warnings),
        evidence=dict(evidence or {}),
        signals=signals or ImportSignals(),
    )
    return regate(ImportResult(draft=draft, meta=meta))
