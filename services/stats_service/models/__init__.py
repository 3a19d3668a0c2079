"""Stats Service models package."""

from services.stats_service.models.core import (
    STAFF_SENTINEL,
    ClassTypeSchedule,
    Member,
    Visit,
)
from services.stats_service.models.enums import ClassCategory
from services.stats_service.models.snapshots import (
    GLOBAL_STATS_VIEW,
    MEMBER_STATS_VIEW,
    mv_global_stats,
    mv_member_stats,
    snapshot_metadata,
)

__all__ = [
    "ClassCategory",
    "ClassTypeSchedule",
    "GLOBAL_STATS_VIEW",
    "MEMBER_STATS_VIEW",
    "Member",
    "STAFF_SENTINEL",
    "Visit",
    "mv_global_stats",
    "mv_member_stats",
    "snapshot_metadata",
]
