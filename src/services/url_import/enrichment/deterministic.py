"""Rule-based enrichment from the signals bag.

Proposals are computed from evidence gathered during extraction (postal
codes, the resolved domain, provider-native place types) and applied only to
fields that are unset or ``LOW``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..confidence import is_eligible, regate
from ..geo import country_from_code
from ..models import Confidence, DraftField, ImportResult, SpotCategory
from ..places_client import category_from_google_types


logger = logging.getLogger(__name__)

POSTCODE_COUNTRIES = {
    "uk": "United Kingdom",
    "us": "United States",
    "ca": "Canada",
    "nl": "Netherlands",
}
# Five-digit codes are ambiguous on their own; a matching domain settles them.
FIVE_DIGIT_TLDS = frozenset({"fr", "de", "it", "es"})
CCTLD_COUNTRIES = frozenset(
    {
        "uk", "fr", "de", "it", "es", "pt", "nl", "be", "ch", "at", "ie", "jp",
        "au", "nz", "ca", "mx", "br", "se", "dk", "no", "fi", "pl", "gr", "cz",
    }
)

JSON_LD_CATEGORIES = {
    "restaurant": SpotCategory.RESTAURANT,
    "foodestablishment": SpotCategory.RESTAURANT,
    "cafeorcoffeeshop": SpotCategory.CAFE,
    "bakery": SpotCategory.CAFE,
    "barorpub": SpotCategory.BAR,
    "winery": SpotCategory.BAR,
    "brewery": SpotCategory.BAR,
    "nightclub": SpotCategory.CLUB,
    "museum": SpotCategory.MUSEUM,
    "artgallery": SpotCategory.MUSEUM,
    "park": SpotCategory.PARK,
    "touristattraction": SpotCategory.ATTRACTION,
    "landmarksorhistoricalbuildings": SpotCategory.ATTRACTION,
    "hotel": SpotCategory.HOTEL,
    "lodgingbusiness": SpotCategory.HOTEL,
    "store": SpotCategory.SHOP,
    "sportsactivitylocation": SpotCategory.ACTIVITY,
    "skiresort": SpotCategory.ACTIVITY,
    "event": SpotCategory.EVENT,
}


@dataclass(frozen=True)
class Proposal:
    field: DraftField
    value: Any
    confidence: Confidence
    evidence: tuple[str, ...]


def _country_from_tld(tld: str | None) -> str | None:
    if not tld:
        return None
    tld = tld.lower().lstrip(".")
    if tld not in CCTLD_COUNTRIES:
        return None
    return country_from_code(tld)


def _country_proposal(result: ImportResult) -> Proposal | None:
    signals = result.meta.signals
    tld = (signals.tld or "").lower().lstrip(".")
    candidates: dict[str, list[str]] = {}
    for hit in signals.detected_postcodes:
        country = POSTCODE_COUNTRIES.get(hit.format)
        label = f"postcode:{hit.value} ({hit.format} format)"
        if country is None and hit.format == "five_digit" and tld in FIVE_DIGIT_TLDS:
            country = country_from_code(tld)
            label = f"{label} + tld:.{tld}"
        if country is not None:
            candidates.setdefault(country, []).append(label)

    if len(candidates) == 1:
        country, evidence = next(iter(candidates.items()))
        return Proposal(DraftField.COUNTRY, country, Confidence.MEDIUM, tuple(evidence))
    if len(candidates) > 1:
        logger.info("Conflicting postcode countries %s; skipping", sorted(candidates))
        return None

    by_tld = _country_from_tld(tld)
    if by_tld is not None:
        return Proposal(DraftField.COUNTRY, by_tld, Confidence.LOW, (f"tld:.{tld}",))
    return None


def _category_proposal(result: ImportResult) -> Proposal | None:
    signals = result.meta.signals
    for ld_type in signals.json_ld_types:
        category = JSON_LD_CATEGORIES.get(ld_type.lower())
        if category is not None:
            return Proposal(
                DraftField.CATEGORY,
                category,
                Confidence.MEDIUM,
                (f"json_ld_type:{ld_type}",),
            )
    if signals.google_types:
        category = category_from_google_types(signals.google_types)
        if category is not SpotCategory.OTHER:
            return Proposal(
                DraftField.CATEGORY,
                category,
                Confidence.MEDIUM,
                tuple(f"google_type:{t}" for t in signals.google_types[:3]),
            )
    return None


def propose(result: ImportResult) -> list[Proposal]:
    """Proposals for fields still eligible for enrichment."""
    proposals = []
    if is_eligible(result.level(DraftField.COUNTRY)):
        proposal = _country_proposal(result)
        if proposal is not None:
            proposals.append(proposal)
    if is_eligible(result.level(DraftField.CATEGORY)):
        proposal = _category_proposal(result)
        if proposal is not None:
            proposals.append(proposal)
    return proposals


def apply_proposals(result: ImportResult, proposals: list[Proposal]) -> ImportResult:
    """Apply each proposal that is strictly stronger than an eligible field."""
    updates: dict[str, Any] = {}
    levels = dict(result.meta.confidence)
    evidence = dict(result.meta.evidence)
    for proposal in proposals:
        current = levels.get(proposal.field, Confidence.NONE)
        if not is_eligible(current) or proposal.confidence <= current:
            continue
        updates[proposal.field.value] = proposal.value
        levels[proposal.field] = proposal.confidence
        evidence[proposal.field] = (*evidence.get(proposal.field, ()), *proposal.evidence)

    if not updates:
        return result
    meta = result.meta.model_copy(update={"confidence": levels, "evidence": evidence})
    draft = result.draft.model_copy(update=updates)
    return regate(result.model_copy(update={"draft": draft, "meta": meta}))


def enrich_deterministically(result: ImportResult) -> ImportResult:
    return apply_proposals(result, propose(result))
