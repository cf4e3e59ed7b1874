"""
Freshness scoring package.

Turns a location's ratings into a single recency-weighted score.
"""

from .service import RecencyWeighting, ScoringService, scoring_service

__all__ = ["RecencyWeighting", "ScoringService", "scoring_service"]
