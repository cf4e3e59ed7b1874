"""
Location ratings feature.

Nearby search, location detail, freshness scoring, time-of-day analysis
and the rating writes that invalidate them.
"""

__all__ = ["domain", "pipeline", "repository", "services"]
