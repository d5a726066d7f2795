"""AI-assisted enrichment for fields the deterministic pass could not fill.

The backend only sees the names of still-weak fields, the trusted values and
the evidence bag. Its answer is re-validated against ``AISuggestions`` and
applied per field using fixed confidence thresholds.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from pydantic import ValidationError
from pydantic_ai import Agent
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.providers.google import GoogleProvider

from core.observability import get_tracer

from ..confidence import is_eligible, regate
from ..geo import canonicalize_country
from ..interfaces import EnrichmentRequest, InferenceBackendProtocol
from ..models import (
    AIEnrichmentRecord,
    AISuggestedField,
    AISuggestions,
    Confidence,
    DraftField,
    ImportResult,
    SpotCategory,
)


logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-lite"
AI_FIELDS: tuple[DraftField, ...] = (
    DraftField.NAME,
    DraftField.CATEGORY,
    DraftField.CITY,
    DraftField.COUNTRY,
)
APPLY_SILENTLY_THRESHOLD = 0.8
APPLY_WITH_WARNING_THRESHOLD = 0.4

SPOT_ENRICHMENT_PROMPT = f"""
You help complete a place record imported from a URL. You receive the names
of the fields that still need a value, the values that are already known and
a list of evidence signals (URL tokens, domain, page title and description,
structured-data types, postal codes).

RULES:
- Only answer for the requested fields; leave every other field null.
- DO NOT invent addresses, coordinates or location facts. A city or country
  must be directly supported by the evidence.
- When the evidence is weak, return null with a confidence below 0.4.
- category must be one of: {", ".join(c.value for c in SpotCategory)}.
- For every value, list the evidence strings you relied on.

Return confidence as a number between 0.0 and 1.0.
"""


def eligible_fields(result: ImportResult) -> tuple[DraftField, ...]:
    return tuple(f for f in AI_FIELDS if is_eligible(result.level(f)))


def build_request(
    result: ImportResult, fields: tuple[DraftField, ...]
) -> EnrichmentRequest:
    draft = result.draft
    meta = result.meta
    known: dict[str, Any] = {}
    for field in DraftField:
        value = draft.value_of(field)
        if value is None or not meta.level(field).is_trusted:
            continue
        known[field.value] = value.model_dump() if hasattr(value, "model_dump") else str(value)

    signals = meta.signals
    evidence: dict[str, Any] = {
        "domain": signals.domain,
        "url_tokens": list(signals.url_tokens),
        "page_title": signals.open_graph.get("og:title") or signals.open_graph.get("title"),
        "page_description": signals.open_graph.get("og:description")
        or signals.open_graph.get("description"),
        "json_ld_types": list(signals.json_ld_types),
        "google_types": list(signals.google_types),
        "yelp_categories": list(signals.yelp_categories),
        "postcodes": [f"{p.value} ({p.format})" for p in signals.detected_postcodes],
        "weak_guesses": {
            f.value: str(draft.value_of(f)) for f in fields if draft.value_of(f) is not None
        },
    }
    if signals.pinterest is not None:
        evidence["pin_title"] = signals.pinterest.pin_title
        evidence["pin_description"] = signals.pinterest.pin_description
    return EnrichmentRequest(
        fields=fields,
        known=known,
        evidence={k: v for k, v in evidence.items() if v},
    )


def build_prompt(request: EnrichmentRequest) -> str:
    payload = {
        "fields": [f.value for f in request.fields],
        "known": request.known,
        "evidence": request.evidence,
    }
    return "Complete the missing fields for this place:\n" + json.dumps(
        payload, ensure_ascii=False, default=str
    )


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_suggestions(raw: Any) -> AISuggestions | None:
    """Validate backend output; anything unusable means no suggestion."""
    if raw is None:
        return None
    try:
        if isinstance(raw, AISuggestions):
            return AISuggestions.model_validate(raw.model_dump())
        if isinstance(raw, str):
            return AISuggestions.model_validate_json(_strip_fences(raw))
        return AISuggestions.model_validate(raw)
    except ValidationError as e:
        logger.warning("Discarding invalid AI enrichment output: %s", e.error_count())
        return None


def _normalize_value(field: DraftField, value: str | None) -> Any:
    if value is None or not value.strip():
        return None
    value = value.strip()
    if field is DraftField.CATEGORY:
        try:
            return SpotCategory(value.lower())
        except ValueError:
            return None
    if field is DraftField.COUNTRY:
        return canonicalize_country(value)
    return value


def format_warning(field: DraftField, suggestion: AISuggestedField, value: Any) -> str:
    evidence = ", ".join(suggestion.evidence) or "no evidence given"
    return (
        f'AI suggested {field.value} "{value}" '
        f"(confidence {suggestion.confidence:.2f}): {evidence}; please verify."
    )


def apply_suggestions(
    result: ImportResult,
    suggestions: AISuggestions,
    model_name: str,
) -> ImportResult:
    """Apply eligible suggestions by threshold and record what was applied."""
    draft_updates: dict[str, Any] = {}
    levels = dict(result.meta.confidence)
    evidence = dict(result.meta.evidence)
    warnings: list[str] = []
    applied: dict[DraftField, bool] = {}

    for field in AI_FIELDS:
        suggestion = suggestions.for_field(field)
        if suggestion is None:
            continue
        applied[field] = False
        if not is_eligible(levels.get(field, Confidence.NONE)):
            continue
        if suggestion.confidence < APPLY_WITH_WARNING_THRESHOLD:
            continue
        value = _normalize_value(field, suggestion.value)
        if value is None:
            continue

        draft_updates[field.value] = value
        if suggestion.confidence >= APPLY_SILENTLY_THRESHOLD:
            levels[field] = Confidence.HIGH
        else:
            levels[field] = Confidence.MEDIUM
            warnings.append(format_warning(field, suggestion, value))
        evidence[field] = (
            *evidence.get(field, ()),
            *(f"ai:{item}" for item in suggestion.evidence),
        )
        applied[field] = True

    record = AIEnrichmentRecord(model=model_name, suggestions=suggestions, applied=applied)
    meta = result.meta.model_copy(
        update={
            "confidence": levels,
            "evidence": evidence,
            "warnings": (*result.meta.warnings, *warnings),
            "ai": record,
        }
    )
    draft = result.draft.model_copy(update=draft_updates) if draft_updates else result.draft
    return regate(result.model_copy(update={"draft": draft, "meta": meta}))


async def enrich_with_ai(
    result: ImportResult, backend: InferenceBackendProtocol | None
) -> ImportResult:
    """Run the AI pass; skipped without a backend or when nothing is weak."""
    if backend is None:
        return result
    fields = eligible_fields(result)
    if not fields:
        return result

    request = build_request(result, fields)
    with tracer.start_as_current_span("url_import.ai_enrichment") as span:
        span.set_attribute("url_import.ai.fields", len(fields))
        span.set_attribute("url_import.ai.model", backend.model_name)
        try:
            raw = await backend.suggest(request)
        except Exception as e:
            logger.warning("AI enrichment failed (%s): %s", type(e).__name__, e)
            return result

    suggestions = parse_suggestions(raw)
    if suggestions is None:
        return result
    return apply_suggestions(result, suggestions, backend.model_name)


class PydanticAIInferenceBackend:
    """Gemini-backed suggestions through a pydantic-ai agent."""

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL,
        timeout: float = 10.0,
    ):
        self.model_name = model_name
        self.timeout = timeout
        provider = GoogleProvider(api_key=api_key)
        self._agent = Agent(
            GoogleModel(model_name, provider=provider),
            output_type=AISuggestions,
            system_prompt=SPOT_ENRICHMENT_PROMPT,
        )

    async def suggest(self, request: EnrichmentRequest) -> AISuggestions:
        result = await asyncio.wait_for(
            self._agent.run(build_prompt(request)), timeout=self.timeout
        )
        return result.output
