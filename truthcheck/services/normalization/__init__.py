"""Claim normalization into search-ready form."""

from truthcheck.services.normalization.normalizer import ClaimNormalizer, normalization_stats

__all__ = ["ClaimNormalizer", "normalization_stats"]
