"""
Time-of-day analysis - buckets ratings into day periods and ranks them.

Hours are taken in the store's own timezone. Only periods with medium or
high confidence are eligible as best/worst period.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from lettuce.config import settings

from ...domain.models import (
    ConfidenceLevel,
    Rating,
    TimeAnalysis,
    TimePeriod,
    TimeRecommendation,
)


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    period: TimePeriod
    start_hour: int
    end_hour: int  # inclusive
    label: str

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.end_hour


PERIOD_WINDOWS: tuple[PeriodWindow, ...] = (
    PeriodWindow("morning", 6, 10, "6:00 AM - 11:00 AM"),
    PeriodWindow("lunch", 11, 14, "11:00 AM - 3:00 PM"),
    PeriodWindow("afternoon", 15, 18, "3:00 PM - 7:00 PM"),
    PeriodWindow("evening", 19, 23, "7:00 PM - 12:00 AM"),
)

# Hours matching no window (overnight) count as evening
FALLBACK_PERIOD: TimePeriod = "evening"

NOT_ENOUGH_DATA_MESSAGE = "Not enough data for time recommendations"
UNDETERMINED_MESSAGE = "Unable to determine optimal timing"


@dataclass(frozen=True, slots=True)
class ConfidenceThresholds:
    high: int = 20
    medium: int = 10
    low: int = 5

    @classmethod
    def from_settings(cls) -> ConfidenceThresholds:
        return cls(**settings.confidence_thresholds())

    def tier(self, sample_size: int) -> ConfidenceLevel:
        if sample_size >= self.high:
            return "high"
        if sample_size >= self.medium:
            return "medium"
        return "low"


RELIABLE_CONFIDENCE: frozenset[str] = frozenset({"high", "medium"})


class TimePeriodAggregator:
    def __init__(
        self,
        windows: Sequence[PeriodWindow] = PERIOD_WINDOWS,
        thresholds: ConfidenceThresholds | None = None,
        fallback_period: TimePeriod = FALLBACK_PERIOD,
    ):
        self.windows = tuple(windows)
        self.thresholds = thresholds or ConfidenceThresholds()
        self.fallback_period = fallback_period
        self._by_period = {window.period: window for window in self.windows}

    def period_for_hour(self, hour: int) -> TimePeriod:
        for window in self.windows:
            if window.period != self.fallback_period and window.contains(hour):
                return window.period
        return self.fallback_period

    def period_for(self, timestamp: datetime, tz: tzinfo = UTC) -> TimePeriod:
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        return self.period_for_hour(timestamp.astimezone(tz).hour)

    def label_for(self, period: TimePeriod) -> str:
        return self._by_period[period].label

    def recommendations(
        self, ratings: Iterable[Rating], tz: tzinfo = UTC
    ) -> list[TimeRecommendation]:
        """
        Per-period averages, highest first.

        Empty periods are omitted. Ties keep table order since the sort is
        stable.
        """
        grouped: dict[TimePeriod, list[int]] = {window.period: [] for window in self.windows}
        for rating in ratings:
            grouped[self.period_for(rating.timestamp, tz)].append(rating.score)

        recommendations = [
            TimeRecommendation(
                period=period,
                average_score=round(sum(scores) / len(scores), 2),
                confidence=self.thresholds.tier(len(scores)),
                sample_size=len(scores),
                time_range=self.label_for(period),
            )
            for period, scores in grouped.items()
            if scores
        ]
        recommendations.sort(key=lambda rec: rec.average_score, reverse=True)
        return recommendations

    def analyze(
        self,
        ratings: Sequence[Rating],
        tz: tzinfo = UTC,
        location_id: str | None = None,
    ) -> TimeAnalysis:
        recommendations = self.recommendations(ratings, tz)
        eligible = [rec for rec in recommendations if rec.confidence in RELIABLE_CONFIDENCE]

        best = eligible[0] if eligible else None
        worst = eligible[-1] if eligible else None
        has_reliable_data = bool(eligible)

        return TimeAnalysis(
            location_id=location_id,
            time_recommendations=recommendations,
            best_period=best.period if best else None,
            worst_period=worst.period if worst else None,
            total_analyzed_ratings=len(ratings),
            has_reliable_data=has_reliable_data,
            optimal_timing_message=self.optimal_timing_message(best, has_reliable_data),
        )

    def optimal_timing_message(
        self, best: TimeRecommendation | None, has_reliable_data: bool
    ) -> str:
        if not has_reliable_data:
            return NOT_ENOUGH_DATA_MESSAGE
        if best is None:
            return UNDETERMINED_MESSAGE
        return (
            f"Best time: {best.period} ({self.label_for(best.period)}) "
            f"- Avg: {best.average_score:g}/5"
        )

    @staticmethod
    def filter_recent(
        ratings: Iterable[Rating], days_back: int = 30, now: datetime | None = None
    ) -> list[Rating]:
        """Ratings at or after ``now - days_back``."""
        cutoff = (now or datetime.now(UTC)) - timedelta(days=days_back)
        return [rating for rating in ratings if rating.timestamp >= cutoff]


time_period_aggregator = TimePeriodAggregator(thresholds=ConfidenceThresholds.from_settings())
