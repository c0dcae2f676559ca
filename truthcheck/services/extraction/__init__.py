"""
Claim extraction services.
"""

from truthcheck.services.extraction.candidate_scorer import CandidateScore, ClaimCandidateScorer, ClaimSignals
from truthcheck.services.extraction.claim_extractor import ClaimExtractor

__all__ = ["ClaimCandidateScorer", "CandidateScore", "ClaimSignals", "ClaimExtractor"]
