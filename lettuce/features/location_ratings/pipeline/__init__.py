"""
Pure computation stages for location ratings.

Scoring and time-of-day analysis. Neither touches storage or the cache.
"""

__all__ = ["scoring", "time_analysis"]
