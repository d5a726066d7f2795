"""Value types threaded through the URL import pipeline.

Every stage receives an ``ImportResult`` (draft + metadata) and returns a new
one; models are frozen so a stage can only derive a changed copy through
``model_copy(update=...)``.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)


class Confidence(IntEnum):
    """Per-field trust tier, ordered ``NONE < LOW < MEDIUM < HIGH``."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def is_trusted(self) -> bool:
        """Medium and high values are protected from later stages."""
        return self >= Confidence.MEDIUM

    def downgraded(self) -> Confidence:
        """One step down for indirect sources; only ``HIGH`` moves."""
        return Confidence.MEDIUM if self is Confidence.HIGH else self

    @classmethod
    def coerce(cls, value: Any) -> Confidence:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError as e:
                raise ValueError(f"Unknown confidence level: {value!r}") from e
        return cls(value)


ConfidenceLevel = Annotated[
    Confidence,
    BeforeValidator(Confidence.coerce),
    PlainSerializer(lambda level: level.label, return_type=str),
]


class DraftField(StrEnum):
    """Draft fields that carry a confidence tier."""

    NAME = "name"
    ADDRESS = "address"
    COORDINATES = "coordinates"
    CITY = "city"
    COUNTRY = "country"
    CONTINENT = "continent"
    CATEGORY = "category"
    LINK = "link"


class SpotCategory(StrEnum):
    RESTAURANT = "restaurant"
    CAFE = "cafe"
    BAR = "bar"
    MUSEUM = "museum"
    PARK = "park"
    ATTRACTION = "attraction"
    ACTIVITY = "activity"
    EVENT = "event"
    CLUB = "club"
    HOTEL = "hotel"
    SHOP = "shop"
    OTHER = "other"


class ProviderType(StrEnum):
    GOOGLE_MAPS = "google_maps"
    YELP = "yelp"
    TRIPADVISOR = "tripadvisor"
    OPENTABLE = "opentable"
    PINTEREST = "pinterest"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    WEBSITE = "website"


class VisitTimeLabel(StrEnum):
    MORNING = "morning"
    LUNCH = "lunch"
    AFTERNOON = "afternoon"
    DAYTIME = "daytime"
    DINNER = "dinner"
    EVENING = "evening"
    LATE_NIGHT = "late_night"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Coordinates(_Frozen):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class OpeningHoursPeriod(_Frozen):
    """One open interval; days are 0=Sunday..6=Saturday, times are ``HHMM``."""

    open_day: int = Field(..., ge=0, le=6)
    open_time: str
    close_day: int | None = Field(default=None, ge=0, le=6)
    close_time: str | None = None


class OpeningHours(_Frozen):
    source: str
    weekday_text: tuple[str, ...] = ()
    periods: tuple[OpeningHoursPeriod, ...] = ()

    @property
    def is_reliable(self) -> bool:
        return bool(self.weekday_text or self.periods)


class VisitTimeSuggestion(_Frozen):
    label: VisitTimeLabel
    source: str
    confidence: ConfidenceLevel


class Draft(_Frozen):
    """Candidate place record; ``None`` means the field is unset."""

    name: str | None = None
    address: str | None = None
    city: str | None = None
    canonical_city_id: str | None = None
    country: str | None = None
    continent: str | None = None
    coordinates: Coordinates | None = None
    category: SpotCategory | None = None
    link: str | None = None
    comments: str | None = None
    photo_url: str | None = None
    opening_hours: OpeningHours | None = None
    visit_time: VisitTimeSuggestion | None = None

    def value_of(self, field: DraftField) -> Any:
        return getattr(self, field.value)


class PostcodeHit(_Frozen):
    """A postal code seen in the source, tagged with the format it matched."""

    value: str
    format: str


class PinterestSignals(_Frozen):
    pin_title: str | None = None
    pin_description: str | None = None
    destination_url: str | None = None


class ImportSignals(_Frozen):
    """Evidence gathered during extraction, consumed by enrichment."""

    domain: str | None = None
    tld: str | None = None
    url_tokens: tuple[str, ...] = ()
    detected_postcodes: tuple[PostcodeHit, ...] = ()
    json_ld_types: tuple[str, ...] = ()
    open_graph: dict[str, str] = Field(default_factory=dict)
    google_types: tuple[str, ...] = ()
    yelp_categories: tuple[str, ...] = ()
    pinterest: PinterestSignals | None = None


class AISuggestedField(BaseModel):
    value: str | None = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    evidence: list[str] = Field(default_factory=list)


class AISuggestions(BaseModel):
    """Structured answer expected from the inference backend."""

    name: AISuggestedField | None = None
    category: AISuggestedField | None = None
    city: AISuggestedField | None = None
    country: AISuggestedField | None = None

    def for_field(self, field: DraftField) -> AISuggestedField | None:
        return getattr(self, field.value, None)


class AIEnrichmentRecord(_Frozen):
    model: str
    suggestions: AISuggestions
    applied: dict[DraftField, bool] = Field(default_factory=dict)


class ExtractionMetadata(_Frozen):
    provider: ProviderType
    method: str
    confidence: dict[DraftField, ConfidenceLevel] = Field(default_factory=dict)
    requires_confirmation: bool = True
    confirmation_forced: bool = False
    warnings: tuple[str, ...] = ()
    evidence: dict[DraftField, tuple[str, ...]] = Field(default_factory=dict)
    raw_url: str | None = None
    resolved_url: str | None = None
    signals: ImportSignals = Field(default_factory=ImportSignals)
    ai: AIEnrichmentRecord | None = None
    # Set once the enrichment passes ran; merged pin results inherit it.
    enriched: bool = False

    def level(self, field: DraftField) -> Confidence:
        return self.confidence.get(field, Confidence.NONE)

    def with_warnings(self, *warnings: str) -> ExtractionMetadata:
        return self.model_copy(update={"warnings": (*self.warnings, *warnings)})


class ImportResult(_Frozen):
    draft: Draft
    meta: ExtractionMetadata

    def level(self, field: DraftField) -> Confidence:
        return self.meta.level(field)
