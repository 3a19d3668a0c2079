"""Enum definitions for stats service schemas."""

import enum


class CoachTimeSlot(str, enum.Enum):
    """Fixed start-time buckets used for coach session breakdowns."""

    EARLY_BIRD = "Early Bird (Before 6 AM)"
    MORNING = "Morning (6-9 AM)"
    LATE_MORNING = "Late Morning (9 AM-12 PM)"
    AFTERNOON = "Afternoon (12-5 PM)"
    EVENING = "Evening (5-7 PM)"
    NIGHT = "Night (After 7 PM)"
