"""
Time-of-day analysis package.

Groups ratings into morning/lunch/afternoon/evening and picks the best
time to visit.
"""

from .service import (
    PERIOD_WINDOWS,
    ConfidenceThresholds,
    PeriodWindow,
    TimePeriodAggregator,
    time_period_aggregator,
)

__all__ = [
    "PERIOD_WINDOWS",
    "ConfidenceThresholds",
    "PeriodWindow",
    "TimePeriodAggregator",
    "time_period_aggregator",
]
