"""Reporting window shared by every stats computation."""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Iterator

from libs.common.config import Settings, get_settings


@dataclass(frozen=True)
class ReportingWindow:
    """Inclusive date range a report covers (normally one calendar year)."""

    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} is before start {self.start}")

    @classmethod
    def for_year(cls, year: int) -> "ReportingWindow":
        return cls(start=date(year, 1, 1), end=date(year, 12, 31))

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ReportingWindow":
        settings = settings or get_settings()
        default = cls.for_year(settings.STATS_YEAR)
        return cls(
            start=settings.STATS_WINDOW_START or default.start,
            end=settings.STATS_WINDOW_END or default.end,
        )

    @property
    def months(self) -> int:
        """Number of calendar months the window touches."""
        return (self.end.year - self.start.year) * 12 + self.end.month - self.start.month + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def iter_months(self) -> Iterator[tuple[int, int]]:
        """Yield (year, month) pairs covered by the window, in order."""
        year, month = self.start.year, self.start.month
        for _ in range(self.months):
            yield year, month
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    def month_labels(self) -> list[str]:
        return [calendar.month_abbr[month] for _, month in self.iter_months()]
