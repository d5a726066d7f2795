"""Coarse visit-time suggestions.

Only broad labels are ever inferred, never clock times, and only when the
source supplied no opening hours and no suggestion exists yet.
"""

from __future__ import annotations

from datetime import datetime

from .models import (
    Confidence,
    ImportResult,
    OpeningHours,
    SpotCategory,
    VisitTimeLabel,
    VisitTimeSuggestion,
)


CATEGORY_VISIT_TIME: dict[SpotCategory, VisitTimeLabel] = {
    SpotCategory.RESTAURANT: VisitTimeLabel.DINNER,
    SpotCategory.CAFE: VisitTimeLabel.MORNING,
    SpotCategory.BAR: VisitTimeLabel.EVENING,
    SpotCategory.CLUB: VisitTimeLabel.LATE_NIGHT,
    SpotCategory.MUSEUM: VisitTimeLabel.AFTERNOON,
    SpotCategory.PARK: VisitTimeLabel.DAYTIME,
    SpotCategory.ATTRACTION: VisitTimeLabel.DAYTIME,
}

# Hours of the day; late_night runs past midnight.
VISIT_WINDOWS: dict[VisitTimeLabel, tuple[int, int]] = {
    VisitTimeLabel.MORNING: (6, 12),
    VisitTimeLabel.LUNCH: (11, 14),
    VisitTimeLabel.AFTERNOON: (12, 17),
    VisitTimeLabel.DAYTIME: (9, 17),
    VisitTimeLabel.DINNER: (18, 22),
    VisitTimeLabel.EVENING: (17, 23),
    VisitTimeLabel.LATE_NIGHT: (22, 28),
}

INFERRED_SOURCE = "inferred"


def visit_window(label: VisitTimeLabel) -> tuple[int, int]:
    return VISIT_WINDOWS[label]


def infer_visit_time_label(category: SpotCategory | None) -> VisitTimeLabel | None:
    if category is None:
        return None
    return CATEGORY_VISIT_TIME.get(category)


def has_reliable_opening_hours(opening_hours: OpeningHours | None) -> bool:
    return opening_hours is not None and opening_hours.is_reliable


def infer_visit_time(result: ImportResult) -> ImportResult:
    """Attach a low-confidence label derived from the category, if allowed."""
    draft = result.draft
    if draft.visit_time is not None or has_reliable_opening_hours(draft.opening_hours):
        return result
    label = infer_visit_time_label(draft.category)
    if label is None:
        return result
    suggestion = VisitTimeSuggestion(
        label=label, source=INFERRED_SOURCE, confidence=Confidence.LOW
    )
    return result.model_copy(
        update={"draft": draft.model_copy(update={"visit_time": suggestion})}
    )


def _minutes(hhmm: str) -> int:
    return int(hhmm[:2]) * 60 + int(hhmm[2:4])


def open_intervals(opening_hours: OpeningHours, day: int) -> list[tuple[int, int]]:
    """Open intervals for ``day`` (0=Sunday) in minutes since midnight.

    Periods that close on a later day extend past 24:00; a period starting the
    day before and running past midnight contributes its early-morning tail.
    """
    intervals = []
    previous_day = (day - 1) % 7
    for period in opening_hours.periods:
        start = _minutes(period.open_time)
        if period.close_time is None:
            end = 24 * 60
        else:
            end = _minutes(period.close_time)
            if period.close_day is not None and period.close_day != period.open_day:
                end += 24 * 60
        if period.open_day == day:
            intervals.append((start, end))
        elif period.open_day == previous_day and end > 24 * 60:
            intervals.append((0, end - 24 * 60))
    return intervals


def is_visit_time_allowed(
    opening_hours: OpeningHours | None,
    label: VisitTimeLabel,
    now: datetime | None = None,
) -> bool:
    """Whether ``label`` overlaps today's opening hours.

    Only structured periods constrain the answer; missing or text-only hours
    never block a label, and neither does a day without open periods.
    """
    if opening_hours is None or not opening_hours.periods:
        return True
    now = now or datetime.now()
    intervals = open_intervals(opening_hours, (now.weekday() + 1) % 7)
    if not intervals:
        return True
    start_hour, end_hour = visit_window(label)
    start, end = start_hour * 60, end_hour * 60
    return any(s < end and start < e for s, e in intervals)
