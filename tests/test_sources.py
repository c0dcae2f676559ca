from typing import List, Optional

import pytest

from truthcheck.config.trusted_domains import normalize_domain
from truthcheck.constants.config import FACTCHECK_ORG_VERDICTS, GOOGLE_FACTCHECK_VERDICTS, SNOPES_VERDICTS
from truthcheck.core.schemas import ArticleContext, NormalizedClaim
from truthcheck.services.sources.ai_assessment import AIAssessmentSource
from truthcheck.services.sources.coherence import (
    CoherenceSource,
    detect_red_flags,
    excerpt_around,
    red_flag_penalty,
)
from truthcheck.services.sources.credibility import CredibilitySource, RatingTableProvider
from truthcheck.services.sources.fact_checker import (
    FactCheckerSource,
    FactCheckHit,
    map_verdict,
    scale_for_publisher,
)
from truthcheck.services.sources.scholarly import (
    ScholarlyHit,
    ScholarlySource,
    fallback_assessment,
    recency_weight,
)

CLAIM_TEXT = "Vitamin D supplements reduce the risk of respiratory infections"


def _claim(text: str = CLAIM_TEXT, claim_type: str = "health") -> NormalizedClaim:
    return NormalizedClaim(
        original_claim=text,
        normalized_claim=text.lower(),
        search_queries=[text],
        claim_type=claim_type,
    )


CONTEXT = ArticleContext()


# -------------------------------------------------------------------------
# Fact checker
# -------------------------------------------------------------------------


@pytest.mark.parametrize(
    "verdict,scale,expected",
    [
        ("True", GOOGLE_FACTCHECK_VERDICTS, 10),
        ("Mostly False", GOOGLE_FACTCHECK_VERDICTS, 3),
        ("Pants on Fire!", GOOGLE_FACTCHECK_VERDICTS, 0),
        ("This claim is false.", GOOGLE_FACTCHECK_VERDICTS, 1),
        ("mostly-true", SNOPES_VERDICTS, 8),
        ("Mostly True", SNOPES_VERDICTS, 8),
        ("Outdated", SNOPES_VERDICTS, 4),
        ("Unsupported", FACTCHECK_ORG_VERDICTS, 2),
        ("Unrated", GOOGLE_FACTCHECK_VERDICTS, 5),
        ("", GOOGLE_FACTCHECK_VERDICTS, 5),
    ],
)
def test_map_verdict(verdict, scale, expected):
    assert map_verdict(verdict, scale) == expected


def test_scale_for_publisher():
    assert scale_for_publisher("www.snopes.com") is SNOPES_VERDICTS
    assert scale_for_publisher("https://www.factcheck.org/2021/05/x") is FACTCHECK_ORG_VERDICTS
    assert scale_for_publisher("politifact.com") is GOOGLE_FACTCHECK_VERDICTS
    assert scale_for_publisher(None) is GOOGLE_FACTCHECK_VERDICTS


class _FactProvider:
    def __init__(self, name: str, hit: Optional[FactCheckHit] = None, error: Optional[Exception] = None):
        self.name = name
        self.hit = hit
        self.error = error
        self.calls = 0

    async def lookup(self, query: str) -> Optional[FactCheckHit]:
        self.calls += 1
        if self.error:
            raise self.error
        return self.hit


def _hit(provider: str = "first", score: int = 3) -> FactCheckHit:
    return FactCheckHit(provider=provider, publisher="Snopes", verdict="Mostly False", score=score, url="https://snopes.com/x")


@pytest.mark.asyncio
async def test_fact_checker_stops_at_first_hit():
    first = _FactProvider("first", hit=_hit())
    second = _FactProvider("second", hit=_hit("second", 10))

    result = await FactCheckerSource([first, second]).query(_claim(), CONTEXT)

    assert result.score == 3
    assert result.confidence == "high"
    assert result.url == "https://snopes.com/x"
    assert second.calls == 0


@pytest.mark.asyncio
async def test_fact_checker_skips_failing_provider():
    first = _FactProvider("first", error=RuntimeError("quota"))
    second = _FactProvider("second", hit=_hit("second", 8))

    result = await FactCheckerSource([first, second]).query(_claim(), CONTEXT)

    assert result.score == 8
    assert result.error is None


@pytest.mark.asyncio
async def test_fact_checker_without_hits_is_neutral():
    result = await FactCheckerSource([_FactProvider("first")]).query(_claim(), CONTEXT)

    assert result.score == 5
    assert result.confidence == "low"
    assert result.error is None


@pytest.mark.asyncio
async def test_fact_checker_all_providers_failing_is_an_error():
    providers = [_FactProvider("a", error=RuntimeError("down")), _FactProvider("b", error=RuntimeError("down"))]
    result = await FactCheckerSource(providers).query(_claim(), CONTEXT)

    assert result.score is None
    assert result.available is False
    assert "a: down" in result.error


@pytest.mark.asyncio
async def test_fact_checker_without_providers_is_neutral():
    result = await FactCheckerSource([]).query(_claim(), CONTEXT)
    assert result.score == 5
    assert result.error is None


@pytest.mark.asyncio
async def test_fact_checker_caches_lookups(cache):
    provider = _FactProvider("first", hit=_hit())
    source = FactCheckerSource([provider], cache=cache)

    await source.query(_claim(), CONTEXT)
    result = await source.query(_claim(), CONTEXT)

    assert provider.calls == 1
    assert result.score == 3


# -------------------------------------------------------------------------
# Scholarly
# -------------------------------------------------------------------------


class _ScholarProvider:
    def __init__(self, name: str, hits: List[ScholarlyHit], claim_types=None, error: Optional[Exception] = None):
        self.name = name
        self.hits = hits
        self.claim_types = claim_types
        self.error = error
        self.queries: List[str] = []

    async def search(self, query: str, limit: int) -> List[ScholarlyHit]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.hits[:limit]


def test_recency_weight():
    assert recency_weight(None) == 0.5
    assert recency_weight(1990) == 0.0
    assert recency_weight(2010) == 0.5
    assert recency_weight(2035) == 1.0


def test_fallback_assessment_weights_similarity_by_recency():
    recent = ScholarlyHit(title=CLAIM_TEXT, year=2022)
    older = ScholarlyHit(title=CLAIM_TEXT, year=2010)

    assert fallback_assessment(CLAIM_TEXT, [recent]) == (10.0, "medium", 1)
    assert fallback_assessment(CLAIM_TEXT, [older]) == (5.0, "medium", 1)
    assert fallback_assessment(CLAIM_TEXT, [recent, recent, recent])[1] == "high"


def test_fallback_assessment_without_similar_titles_is_neutral():
    unrelated = ScholarlyHit(title="Deep learning for protein folding", year=2021)
    assert fallback_assessment(CLAIM_TEXT, [unrelated]) == (5.0, "medium", 0)


@pytest.mark.asyncio
async def test_scholarly_filters_providers_by_claim_type():
    general = _ScholarProvider("crossref", [ScholarlyHit(title=CLAIM_TEXT, year=2020)])
    health_only = _ScholarProvider("pubmed", [], claim_types=frozenset({"health"}))
    source = ScholarlySource([general, health_only])

    await source.query(_claim(claim_type="economic"), CONTEXT)
    assert health_only.queries == []
    assert len(general.queries) == 1

    await source.query(_claim(claim_type="health"), CONTEXT)
    assert len(health_only.queries) == 1


@pytest.mark.asyncio
async def test_scholarly_fallback_scoring():
    provider = _ScholarProvider("crossref", [ScholarlyHit(title=CLAIM_TEXT, url="https://doi.org/x", year=2020)])
    result = await ScholarlySource([provider]).query(_claim(), CONTEXT)

    assert result.score == 10.0
    assert result.url == "https://doi.org/x"
    assert result.details["method"] == "similarity_recency"
    assert provider.queries == [CLAIM_TEXT.lower()]


@pytest.mark.asyncio
async def test_scholarly_uses_llm_assessment(make_llm):
    llm = make_llm({"overall_score": 8, "confidence": "high", "assessment": "Two trials support the claim"})
    provider = _ScholarProvider("crossref", [ScholarlyHit(title="Vitamin D and infections", year=2019)])

    result = await ScholarlySource([provider], llm=llm).query(_claim(), CONTEXT)

    assert result.score == 8.0
    assert result.confidence == "high"
    assert result.explanation == "Two trials support the claim"
    assert llm.calls[0]["purpose"] == "evidence_assessment"


@pytest.mark.asyncio
async def test_scholarly_llm_failure_uses_fallback(make_llm):
    llm = make_llm(RuntimeError("rate limited"))
    provider = _ScholarProvider("crossref", [ScholarlyHit(title=CLAIM_TEXT, year=2020)])

    result = await ScholarlySource([provider], llm=llm).query(_claim(), CONTEXT)
    assert result.details["method"] == "similarity_recency"


@pytest.mark.asyncio
async def test_scholarly_no_hits_and_all_errors():
    empty = await ScholarlySource([_ScholarProvider("crossref", [])]).query(_claim(), CONTEXT)
    assert (empty.score, empty.confidence) == (5, "low")

    failing = _ScholarProvider("crossref", [], error=RuntimeError("503"))
    failed = await ScholarlySource([failing]).query(_claim(), CONTEXT)
    assert failed.score is None
    assert failed.error


# -------------------------------------------------------------------------
# Credibility
# -------------------------------------------------------------------------


class _Rater:
    def __init__(self, name: str, rating: Optional[float] = None, error: Optional[Exception] = None):
        self.name = name
        self.rating = rating
        self.error = error

    async def rate(self, domain: str) -> Optional[float]:
        if self.error:
            raise self.error
        return self.rating


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "domain,expected",
    [
        ("www.cdc.gov", 9.0),
        ("https://www.reuters.com/world/article", 10.0),
        ("dailymail.co.uk", 2.0),
        ("unknown-blog.example", None),
    ],
)
async def test_rating_table(domain, expected):
    assert await RatingTableProvider().rate(normalize_domain(domain)) == expected


@pytest.mark.asyncio
async def test_credibility_averages_responders():
    source = CredibilitySource([RatingTableProvider(), _Rater("other", 7.0)])
    result = await source.query(_claim(), ArticleContext(domain="cdc.gov"))

    assert result.score == 8.0
    assert result.confidence == "high"
    assert result.details["providers"] == {"rating_table": 9.0, "other": 7.0}


@pytest.mark.asyncio
async def test_credibility_single_responder_is_medium_confidence():
    source = CredibilitySource([_Rater("a", 6.0), _Rater("b", error=RuntimeError("timeout"))])
    result = await source.query(_claim(), ArticleContext(domain="example.com"))

    assert result.score == 6.0
    assert result.confidence == "medium"


@pytest.mark.asyncio
async def test_credibility_without_domain_or_data_is_neutral():
    source = CredibilitySource([RatingTableProvider()])

    missing = await source.query(_claim(), ArticleContext())
    assert (missing.score, missing.confidence) == (5, "low")

    unknown = await source.query(_claim(), ArticleContext(domain="unknown-blog.example"))
    assert (unknown.score, unknown.confidence) == (5, "low")


@pytest.mark.asyncio
async def test_credibility_all_providers_failing_is_an_error():
    source = CredibilitySource([_Rater("a", error=RuntimeError("down"))])
    result = await source.query(_claim(), ArticleContext(domain="example.com"))

    assert result.score is None
    assert result.error


# -------------------------------------------------------------------------
# Coherence
# -------------------------------------------------------------------------


def test_detect_red_flags_and_penalty():
    flags = detect_red_flags("SHOCKING news: a miracle cure found!!!")
    types = {f["flag_type"] for f in flags}

    assert {"sensational_language", "extraordinary_claim", "emotional_manipulation"} <= types
    assert red_flag_penalty(flags) == pytest.approx((3 + 4 + 2) * 0.5)


def test_clean_text_has_no_red_flags():
    assert detect_red_flags("The city council approved the budget on Tuesday.") == []


def test_excerpt_around_claim():
    assert excerpt_around("", "claim text") == "claim text"

    document = "a " * 2000 + "the claim sits here " + "b " * 2000
    excerpt = excerpt_around(document, "the claim sits here", window=100)
    assert "the claim sits here" in excerpt
    assert len(excerpt) == 100


@pytest.mark.asyncio
async def test_coherence_fallback_scoring():
    document = "SHOCKING news: a miracle cure found!!! " + "Officials reviewed the data carefully. " * 10
    result = await CoherenceSource().query(_claim(), ArticleContext(document_text=document))

    assert result.score == 5.5
    assert result.confidence == "medium"
    assert result.details["method"] == "phrase_list"


@pytest.mark.asyncio
async def test_coherence_short_clean_text_is_low_confidence():
    result = await CoherenceSource().query(_claim(), ArticleContext())

    assert result.score == 10.0
    assert result.confidence == "low"


@pytest.mark.asyncio
async def test_coherence_uses_llm(make_llm):
    llm = make_llm(
        {
            "coherence_score": 3,
            "manipulation_risk": "high",
            "red_flags_detected": [{"flag_type": "sensational_language", "severity": 4, "example": "SHOCKING"}],
        }
    )
    result = await CoherenceSource(llm=llm).query(_claim(), ArticleContext(document_text="SHOCKING news"))

    assert result.score == 3.0
    assert result.details["method"] == "llm"
    assert result.details["manipulation_risk"] == "high"
    assert llm.calls[0]["purpose"] == "red_flag_detection"


@pytest.mark.parametrize("flags", [3, "sensational", {"flag_type": "x"}])
@pytest.mark.asyncio
async def test_coherence_malformed_llm_flags_use_phrase_lists(make_llm, flags):
    llm = make_llm({"coherence_score": 4, "red_flags_detected": flags})
    document = "SHOCKING news: a miracle cure found!!! " + "Officials reviewed the data carefully. " * 10

    result = await CoherenceSource(llm=llm).query(_claim(), ArticleContext(document_text=document))

    assert result.details["method"] == "phrase_list"
    assert result.score == 5.5


@pytest.mark.asyncio
async def test_coherence_llm_without_flags_list(make_llm):
    llm = make_llm({"coherence_score": 7, "red_flags_detected": None, "manipulation_risk": "low"})

    result = await CoherenceSource(llm=llm).query(_claim(), ArticleContext(document_text="Calm report."))

    assert result.details["method"] == "llm"
    assert result.details["red_flags"] == []
    assert result.score == 7.0


# -------------------------------------------------------------------------
# AI evidence assessment
# -------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_ai_assessment_judges_scholarly_hits(make_llm):
    llm = make_llm({"overall_score": 2, "confidence": "high", "assessment": "Trials found no effect"})
    provider = _ScholarProvider("crossref", [ScholarlyHit(title="Vitamin D and infections", url="https://doi.org/v", year=2019)])
    scholarly = ScholarlySource([provider])

    result = await AIAssessmentSource(scholarly, llm=llm).query(_claim(), CONTEXT)

    assert result.score == 2.0
    assert result.confidence == "high"
    assert result.explanation == "Trials found no effect"
    assert result.url == "https://doi.org/v"
    assert llm.calls[0]["purpose"] == "evidence_assessment"
    assert "Vitamin D and infections" in llm.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_ai_assessment_without_llm_is_neutral():
    provider = _ScholarProvider("crossref", [ScholarlyHit(title=CLAIM_TEXT)])

    result = await AIAssessmentSource(ScholarlySource([provider])).query(_claim(), CONTEXT)

    assert (result.score, result.confidence) == (5, "low")
    assert provider.queries == []


@pytest.mark.asyncio
async def test_ai_assessment_unusable_answer_is_neutral(make_llm):
    provider = _ScholarProvider("crossref", [ScholarlyHit(title=CLAIM_TEXT)])

    result = await AIAssessmentSource(ScholarlySource([provider]), llm=make_llm("no idea")).query(_claim(), CONTEXT)

    assert (result.score, result.confidence) == (5, "low")


@pytest.mark.asyncio
async def test_ai_assessment_search_failure_is_reported(make_llm):
    failing = _ScholarProvider("crossref", [], error=RuntimeError("503"))

    result = await AIAssessmentSource(ScholarlySource([failing]), llm=make_llm()).query(_claim(), CONTEXT)

    assert result.score is None
    assert "503" in result.error
