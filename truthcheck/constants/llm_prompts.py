"""
LLM prompts for claim extraction, normalization, evidence assessment and override validation.
Templates are filled with str.format, so literal JSON braces are doubled.
"""

# ============================================================================
# CLAIM EXTRACTION PROMPTS
# ============================================================================

CLAIM_CLASSIFICATION_PROMPT = """You are a fact-checking assistant. Identify every verifiable factual claim in the text below.
A factual claim asserts something that can be checked against evidence: statistics, causal statements,
historical facts, scientific findings, or attributed statements. Ignore opinions, questions and predictions.

Return ONLY a JSON array, no prose, in this exact format:
[
  {{"text": "exact claim sentence", "confidence": 0.0-1.0, "type": "statistical|causal|historical|scientific|attributed|other"}}
]

Text:
{text}"""

# ============================================================================
# NORMALIZATION PROMPTS
# ============================================================================

QUERY_NORMALIZATION_PROMPT = """Normalize this factual claim for evidence search.

Claim: "{claim}"

Return ONLY valid JSON with this structure:
{{
  "normalized_claim": "simplified canonical statement",
  "key_entities": [{{"type": "number|quote|proper_noun|scientific_term", "value": "...", "unit": null}}],
  "search_queries": ["query 1", "query 2", "query 3"],
  "claim_type": "health|political|scientific|environmental|economic|other"
}}"""

# ============================================================================
# EVIDENCE ASSESSMENT PROMPTS
# ============================================================================

EVIDENCE_ASSESSMENT_PROMPT = """Assess how well the following scholarly evidence supports the claim.

Claim: "{claim}"

Evidence:
{evidence}

Return ONLY valid JSON:
{{
  "overall_score": 0-10,
  "confidence": "high|medium|low",
  "assessment": "one or two sentence summary",
  "findings": ["short finding", "..."]
}}"""

RED_FLAG_DETECTION_PROMPT = """Analyze this news excerpt for manipulation indicators: sensational language,
unsupported extraordinary claims, vague attribution and emotional manipulation.

Excerpt:
{text}

Return ONLY valid JSON:
{{
  "red_flags_detected": [
    {{"flag_type": "...", "severity": 1-5, "example": "quoted text", "significance": "..."}}
  ],
  "coherence_score": 0-10,
  "manipulation_risk": "high|medium|low"
}}"""

# ============================================================================
# OVERRIDE VALIDATION PROMPTS
# ============================================================================

OVERRIDE_VALIDATION_PROMPT = """Compare a claim with an excerpt from an authoritative source ({source}).

Claim: "{claim}"

Excerpt: "{excerpt}"

Return ONLY valid JSON:
{{
  "addresses_same_topic": true,
  "relationship": "supports|contradicts|tangential",
  "override_valid": true,
  "confidence": 0.0-1.0,
  "reasoning": "one sentence"
}}"""
