"""
Aggregate scoring and authoritative overrides.
"""

from truthcheck.services.scoring.aggregator import AggregatingScorer
from truthcheck.services.scoring.override import OverrideEvaluator

__all__ = ["AggregatingScorer", "OverrideEvaluator"]
