"""
Evidence sources scored by the aggregator.

Modules:
    - fact_checker: Published fact-check verdicts
    - scholarly: Academic literature lookups
    - credibility: Rating of the article's hosting domain
    - coherence: Red-flag analysis of the surrounding text
    - ai_assessment: LLM judgement of the scholarly evidence
"""

from truthcheck.services.sources.ai_assessment import AIAssessmentSource
from truthcheck.services.sources.base import EvidenceSource
from truthcheck.services.sources.coherence import CoherenceSource
from truthcheck.services.sources.credibility import CredibilitySource
from truthcheck.services.sources.fact_checker import FactCheckerSource
from truthcheck.services.sources.scholarly import ScholarlySource

__all__ = ["EvidenceSource", "FactCheckerSource", "ScholarlySource", "CredibilitySource", "CoherenceSource", "AIAssessmentSource"]
