"""
Static vocabularies and tunable constants for claim extraction, normalization and scoring.
Runtime switches (API keys, enabled sources, timeouts) live in truthcheck.core.config.Settings.
"""

from dataclasses import dataclass

# ============================================================================
# SEGMENTATION
# ============================================================================

DEFAULT_MIN_SENTENCE_LENGTH = 15

# Lowercased, without the trailing period
DEFAULT_ABBREVIATIONS = frozenset(
    {
        "dr", "mr", "mrs", "ms", "prof", "sr", "jr", "st", "mt", "gen", "gov", "sen", "rep", "col",
        "lt", "sgt", "capt", "rev", "inc", "ltd", "co", "corp", "vs", "etc", "approx", "est", "dept",
        "univ", "no", "vol", "fig", "al", "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep",
        "sept", "oct", "nov", "dec", "e.g", "i.e", "u.s", "u.k", "u.n", "u.s.a", "a.m", "p.m", "ph.d",
    }
)

# ============================================================================
# CLAIM CANDIDATE SIGNALS
# ============================================================================

FACTUAL_VERBS = frozenset(
    {
        "is", "was", "are", "were", "be", "been", "caused", "causes", "led", "leads", "resulted",
        "results", "produced", "found", "finds", "discovered", "determined", "established", "proved",
        "proves", "demonstrated", "demonstrates", "confirmed", "confirms", "verified", "reported",
        "reports", "stated", "states", "announced", "declared", "claimed", "asserted", "maintained",
        "argued", "show", "shows", "showed", "shown", "indicates", "indicated", "suggests", "suggested",
        "implies", "reveals", "revealed", "reduces", "reduced", "increases", "increased", "decreases",
        "decreased", "improves", "improved", "costs", "cost", "saves", "saved", "generates", "creates",
        "killed", "kills", "rose", "fell", "grew", "dropped", "doubled", "tripled",
    }
)

CLAIM_MARKERS = (
    "according to",
    "studies show",
    "study shows",
    "study found",
    "research indicates",
    "research shows",
    "experts say",
    "scientists have found",
    "scientists say",
    "data shows",
    "data show",
    "data reveals",
    "evidence suggests",
    "reports indicate",
    "findings reveal",
    "statistics show",
    "numbers indicate",
    "figures suggest",
    "officials said",
    "it is estimated",
)

OPINION_MARKERS = (
    "i believe",
    "i think",
    "i feel",
    "in my opinion",
    "in my view",
    "arguably",
    "it seems",
    "seems like",
    "probably",
    "perhaps",
    "maybe",
    "i suspect",
    "we believe",
    "should be",
    "ought to",
)

PREPOSITIONS = frozenset(
    {"in", "on", "at", "by", "for", "with", "from", "of", "to", "about", "during", "after", "before", "between", "among"}
)

LARGE_NUMBER_UNITS = ("thousand", "million", "billion", "trillion", "people", "dollars", "deaths", "cases", "patients")
LARGE_NUMBER_THRESHOLD = 1000

# Relative ordering is load-bearing: verb > marker > percentage > large number > entity > date = quote
SIGNAL_WEIGHTS = {
    "factual_verb": 0.45,
    "claim_marker": 0.35,
    "percentage": 0.25,
    "large_number": 0.22,
    "named_entity": 0.15,
    "date_reference": 0.12,
    "quotation": 0.12,
    "structure": 0.18,
}

RAW_CONFIDENCE_CAP = 2.0
OPINION_PENALTY = 0.7
HIGH_CONFIDENCE_CLAIM = 0.6


@dataclass(frozen=True)
class SensitivityProfile:
    name: str
    acceptance_floor: float
    max_claims: int


SENSITIVITY_PROFILES = {
    "high": SensitivityProfile("high", acceptance_floor=0.10, max_claims=150),
    "balanced": SensitivityProfile("balanced", acceptance_floor=0.20, max_claims=100),
    "strict": SensitivityProfile("strict", acceptance_floor=0.30, max_claims=20),
}

CLAIM_DEDUP_THRESHOLD = 0.8

# ============================================================================
# NORMALIZATION
# ============================================================================

FILLER_WORDS = frozenset({"the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"})

# Capitalized words that are not proper nouns in practice
COMMON_CAPITALIZED = frozenset(
    {
        "The", "This", "That", "These", "Those", "There", "Their", "They", "It", "Its", "A", "An", "In",
        "On", "At", "For", "But", "And", "Or", "If", "When", "While", "After", "Before", "According",
        "Studies", "Study", "Research", "Experts", "Scientists", "Data", "Some", "Many", "Most", "We",
        "He", "She", "I", "You", "Our", "New", "More", "Less", "All", "One",
    }
)

SCIENTIFIC_TERMS = (
    "vaccine", "virus", "covid", "coronavirus", "pandemic", "epidemic", "clinical", "trial", "study",
    "research", "dna", "gene", "protein", "molecule", "species", "evolution", "quantum", "carbon",
)

# Checked in order; first bucket with a hit wins
CLAIM_TYPE_KEYWORDS = (
    ("health", ("vaccine", "covid", "virus", "pandemic", "disease", "hospital", "cancer", "autism", "patients", "medical", "drug")),
    ("political", ("election", "vote", "president", "government", "policy", "congress", "senate", "parliament", "minister")),
    ("environmental", ("climate", "environment", "temperature", "global warming", "emissions", "pollution", "carbon")),
    ("economic", ("economy", "money", "market", "business", "inflation", "gdp", "unemployment", "tax", "dollars")),
    ("scientific", ("study", "research", "experiment", "data", "statistics", "scientist", "earth", "planet", "universe", "years old", "species", "physics")),
)

HEURISTIC_CONFIDENCE_WITH_ENTITIES = 0.8
HEURISTIC_CONFIDENCE_WITHOUT_ENTITIES = 0.5
MAX_SEARCH_QUERIES = 3

# ============================================================================
# EVIDENCE SOURCES
# ============================================================================

NEUTRAL_SCORE = 5

CONFIDENCE_VALUES = {"high": 1.0, "medium": 0.6, "low": 0.3}

GOOGLE_FACTCHECK_VERDICTS = {
    "true": 10,
    "mostly true": 8,
    "half true": 5,
    "mostly false": 3,
    "false": 1,
    "pants on fire": 0,
}

SNOPES_VERDICTS = {
    "true": 10,
    "mostly-true": 8,
    "mixture": 5,
    "mostly-false": 3,
    "false": 1,
    "outdated": 4,
    "unproven": 5,
}

FACTCHECK_ORG_VERDICTS = {
    "correct": 10,
    "mostly-correct": 8,
    "partial": 5,
    "mostly-incorrect": 3,
    "incorrect": 1,
    "unsupported": 2,
}

FACTUAL_REPORTING_SCORES = {"very high": 10, "high": 9, "mostly factual": 7, "mixed": 5, "low": 2, "very low": 1}

SCHOLARLY_TOP_RESULTS = 5
SCHOLARLY_SIMILARITY_FLOOR = 0.3
SCHOLARLY_RECENCY_BASE_YEAR = 2000

COHERENCE_SEVERITY_FACTOR = 0.5
COHERENCE_MIN_TEXT_LENGTH = 200
COHERENCE_WINDOW_CHARS = 1500

# flag_type -> (severity 1-5, phrases)
RED_FLAG_PHRASES = {
    "sensational_language": (
        3,
        ("shocking", "you won't believe", "mind-blowing", "unbelievable", "bombshell", "explosive", "jaw-dropping"),
    ),
    "extraordinary_claim": (
        4,
        ("miracle cure", "cures all", "100% effective", "guaranteed", "secret they", "doctors hate", "never before seen"),
    ),
    "vague_attribution": (
        2,
        ("some say", "people are saying", "sources say", "experts agree", "many believe", "it is said", "they don't want you"),
    ),
    "emotional_manipulation": (
        3,
        ("outrageous", "terrifying", "wake up", "share before", "before it's deleted", "disgusting"),
    ),
}

# ============================================================================
# OVERRIDE
# ============================================================================

OVERRIDE_RELEVANCE_FLOOR = 0.5
OVERRIDE_MATCHES_PER_SOURCE = 3
OVERRIDE_SUPPORTS_RELEVANCE = 0.8
OVERRIDE_VALID_RELEVANCE = 0.7
RELATIONSHIP_SCORES = {"supports": 9, "contradicts": 2, "tangential": 5}

# ============================================================================
# CACHE TTLS (hours)
# ============================================================================

CLAIM_CACHE_TTL_HOURS = 24
NORMALIZED_CACHE_TTL_HOURS = 168
SCORES_CACHE_TTL_HOURS = 6
FACTCHECK_CACHE_TTL_HOURS = 24
SCHOLAR_CACHE_TTL_HOURS = 48
CREDIBILITY_CACHE_TTL_HOURS = 72
COHERENCE_CACHE_TTL_HOURS = 24
OVERRIDE_CACHE_TTL_HOURS = 24

# ============================================================================
# EXTERNAL ENDPOINTS
# ============================================================================

GOOGLE_FACTCHECK_URL = "https://factchecktools.googleapis.com/v1alpha1/claims:search"
CROSSREF_WORKS_URL = "https://api.crossref.org/works"
PUBMED_ESEARCH_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
PUBMED_ESUMMARY_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esummary.fcgi"
WIKIPEDIA_SEARCH_URL = "https://en.wikipedia.org/w/api.php"

LLM_MAX_TOKENS_EXTRACTION = 2000
LLM_MAX_TOKENS_NORMALIZATION = 500
LLM_MAX_TOKENS_ASSESSMENT = 600
