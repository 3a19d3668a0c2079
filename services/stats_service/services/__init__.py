"""Stats Service computation package."""

from services.stats_service.services.engine import StatsEngine
from services.stats_service.services.window import ReportingWindow

__all__ = [
    "ReportingWindow",
    "StatsEngine",
]
