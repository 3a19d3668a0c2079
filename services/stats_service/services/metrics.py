"""Pure metric helpers shared by the member, peer, global and coach computers.

Everything here works on plain values (dates, times, visit rows) so it can be
unit-tested without a database.
"""

import calendar
import math
from bisect import bisect_right
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Protocol, Sequence

from services.stats_service.models import STAFF_SENTINEL
from services.stats_service.schemas.enums import CoachTimeSlot

EARLY_BIRD_CUTOFF_HOUR = 8
LATE_BOOKING_WINDOW = timedelta(hours=2)
PERFECT_WEEK_MIN_CLASSES = 4
BADGE_SHARE_THRESHOLD = 0.30


class VisitLike(Protocol):
    class_date: date
    class_time: Optional[time]
    cancelled: bool
    missed: bool
    booked_at: Optional[datetime]


def is_attended(visit) -> bool:
    return not visit.cancelled and not visit.missed


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves away from zero for non-negative values (SQL ROUND semantics)."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def percentage(part: float, whole: float, ndigits: int = 0) -> float:
    if not whole:
        return 0
    return round_half_up(part * 100.0 / whole, ndigits)


# ---------------------------------------------------------------------------
# Streaks and weeks
# ---------------------------------------------------------------------------


def longest_streak(days: Iterable[date]) -> int:
    """
    Longest run of calendar-consecutive days.

    Duplicates are ignored; a gap of exactly one day continues a run and any
    larger gap starts a new one. No days means a streak of 0.
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0

    best = current = 1
    for previous, day in zip(ordered, ordered[1:]):
        if day - previous == timedelta(days=1):
            current += 1
            best = max(best, current)
        else:
            current = 1
    return best


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def perfect_weeks(attended_days: Iterable[date]) -> int:
    """Count Monday-aligned weeks with at least four attended classes.

    ``attended_days`` has one entry per attended class, so two classes on the
    same day count twice.
    """
    per_week = Counter(week_start(day) for day in attended_days)
    return sum(1 for count in per_week.values() if count >= PERFECT_WEEK_MIN_CLASSES)


# ---------------------------------------------------------------------------
# Timing metrics
# ---------------------------------------------------------------------------


def early_bird_score(visits: Iterable[VisitLike]) -> int:
    """Percent of attended classes with a known start time that start before 08:00."""
    timed = 0
    early = 0
    for visit in visits:
        if not is_attended(visit) or visit.class_time is None:
            continue
        timed += 1
        if visit.class_time.hour < EARLY_BIRD_CUTOFF_HOUR:
            early += 1
    if timed == 0:
        return 0
    return round_int(early * 100.0 / timed)


def is_late_booking(visit: VisitLike) -> bool:
    """Attended and booked less than two hours before the class started."""
    if not is_attended(visit) or visit.booked_at is None or visit.class_time is None:
        return False
    starts_at = datetime.combine(visit.class_date, visit.class_time)
    return starts_at - visit.booked_at.replace(tzinfo=None) < LATE_BOOKING_WINDOW


def count_late_bookings(visits: Iterable[VisitLike]) -> int:
    return sum(1 for visit in visits if is_late_booking(visit))


def format_time_slot(value: time) -> str:
    """Format a class start time as "06:00 AM"."""
    return value.strftime("%I:%M %p")


def day_name(day: date) -> str:
    return calendar.day_name[day.weekday()]


def coach_time_slot(value: time) -> CoachTimeSlot:
    hour = value.hour
    if hour < 6:
        return CoachTimeSlot.EARLY_BIRD
    if hour < 9:
        return CoachTimeSlot.MORNING
    if hour < 12:
        return CoachTimeSlot.LATE_MORNING
    if hour < 17:
        return CoachTimeSlot.AFTERNOON
    if hour < 19:
        return CoachTimeSlot.EVENING
    return CoachTimeSlot.NIGHT


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


def ranked(counts: Counter, tiebreak=None) -> list[tuple]:
    """Sort ``(key, count)`` pairs by count desc, then by ``tiebreak(key)`` asc."""
    tiebreak = tiebreak or (lambda key: key)
    return sorted(counts.items(), key=lambda item: (-item[1], tiebreak(item[0])))


def top_key(counts: Counter, default, tiebreak=None):
    ordered = ranked(counts, tiebreak)
    return ordered[0][0] if ordered else default


def weekday_order(name: str) -> int:
    return list(calendar.day_name).index(name)


def coach_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    """Display name for coach attribution, or None for unassigned classes."""
    if not first_name or first_name == STAFF_SENTINEL or last_name == STAFF_SENTINEL:
        return None
    return f"{first_name} {last_name or ''}".strip()


# ---------------------------------------------------------------------------
# Percentiles
# ---------------------------------------------------------------------------


def percentile_rank(value: float, sorted_values: Sequence[float]) -> int:
    """
    Inclusive percentile rank: share of the population at or below ``value``.

    ``sorted_values`` must be sorted ascending. The population maximum always
    ranks 100; an empty population ranks everyone 0.
    """
    if not sorted_values:
        return 0
    at_or_below = bisect_right(sorted_values, value)
    return round_int(at_or_below * 100.0 / len(sorted_values))
