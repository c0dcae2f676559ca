import asyncio

import pytest

from truthcheck.core.schemas import ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.scoring.aggregator import AggregatingScorer, confidence_band, weighted_final
from truthcheck.services.sources.base import EvidenceSource

WEIGHTS = {"fact_checker": 0.35, "source_credibility": 0.20, "scholarly": 0.30, "coherence": 0.15}

CLAIM = NormalizedClaim(
    original_claim="The Earth is approximately 4.5 billion years old.",
    normalized_claim="earth is approximately 4.5 billion years old",
    claim_type="scientific",
)


class _Source(EvidenceSource):
    def __init__(self, name, score=None, confidence="medium", error=None, delay=0.0, cache=None):
        super().__init__(cache)
        self.name = name
        self.score = score
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.calls = 0

    async def query(self, claim, context):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SourceScore(score=self.score, confidence=self.confidence, explanation=f"{self.name} says {self.score}")


def _sources(**scores):
    return [_Source(name, score=s) for name, s in scores.items()]


@pytest.mark.asyncio
async def test_weighted_mean_of_all_sources():
    scorer = AggregatingScorer(
        _sources(fact_checker=8, source_credibility=6, scholarly=7, coherence=10), WEIGHTS
    )

    result = await scorer.score_claim(CLAIM)

    # (8*.35 + 6*.2 + 7*.3 + 10*.15) / 1.0 = 7.6
    assert result.final == 8
    assert result.confidence == "medium"
    assert set(result.components) == set(WEIGHTS)


@pytest.mark.asyncio
async def test_all_sources_failing_is_neutral_and_low():
    sources = [_Source(name, error=RuntimeError(f"{name} down")) for name in WEIGHTS]
    result = await AggregatingScorer(sources, WEIGHTS).score_claim(CLAIM)

    assert result.final == 5
    assert result.confidence == "low"
    assert len(result.components) == 4
    assert all(c.error and c.score is None for c in result.components.values())


@pytest.mark.asyncio
async def test_failed_source_is_excluded_from_the_mean():
    sources = [
        _Source("fact_checker", score=2, confidence="high"),
        _Source("scholarly", error=RuntimeError("crossref 503")),
    ]
    result = await AggregatingScorer(sources, WEIGHTS).score_claim(CLAIM)

    assert result.final == 2
    assert result.components["scholarly"].error == "crossref 503"
    # mean(1.0, 0.3) = 0.65
    assert result.confidence == "medium"


@pytest.mark.asyncio
async def test_slow_source_times_out_without_blocking_siblings():
    sources = [
        _Source("fact_checker", score=9, confidence="high"),
        _Source("scholarly", score=1, delay=1.0),
    ]
    scorer = AggregatingScorer(sources, WEIGHTS, timeouts={"scholarly": 0.05})

    result = await scorer.score_claim(CLAIM)

    assert result.final == 9
    assert "timeout" in result.components["scholarly"].error


@pytest.mark.asyncio
async def test_sources_without_weight_are_not_run():
    unweighted = _Source("coherence", score=0)
    scorer = AggregatingScorer([_Source("fact_checker", score=6), unweighted], {"fact_checker": 1.0})

    result = await scorer.score_claim(CLAIM)

    assert unweighted.calls == 0
    assert list(result.components) == ["fact_checker"]
    assert result.final == 6


@pytest.mark.asyncio
async def test_results_are_cached_per_claim_and_domain(cache):
    source = _Source("fact_checker", score=7)
    scorer = AggregatingScorer([source], WEIGHTS, cache=cache)

    first = await scorer.score_claim(CLAIM, ArticleContext(domain="cdc.gov"))
    second = await scorer.score_claim(CLAIM, ArticleContext(domain="cdc.gov"))
    assert first == second
    assert source.calls == 1

    await scorer.score_claim(CLAIM, ArticleContext(domain="example.com"))
    assert source.calls == 2


@pytest.mark.asyncio
async def test_all_failed_results_are_not_cached(cache):
    source = _Source("fact_checker", error=RuntimeError("down"))
    scorer = AggregatingScorer([source], WEIGHTS, cache=cache)

    await scorer.score_claim(CLAIM)
    await scorer.score_claim(CLAIM)

    assert source.calls == 2


@pytest.mark.asyncio
async def test_score_claims_batch_isolates_failures(monkeypatch):
    scorer = AggregatingScorer(_sources(fact_checker=4), WEIGHTS)
    other = CLAIM.model_copy(update={"original_claim": "Unemployment fell to 4 percent."})
    original = scorer.score_claim

    async def _flaky(claim, context=None):
        if claim.original_claim.startswith("Unemployment"):
            raise RuntimeError("boom")
        return await original(claim, context)

    monkeypatch.setattr(scorer, "score_claim", _flaky)
    results = await scorer.score_claims_batch([CLAIM, other])

    assert results[0].final == 4
    assert results[1] is None


@pytest.mark.parametrize(
    "scores",
    [
        {"fact_checker": 0, "source_credibility": 10, "scholarly": 5, "coherence": 5},
        {"fact_checker": 7.4, "source_credibility": 7.4, "scholarly": 7.4, "coherence": 7.4},
        {"fact_checker": 1, "scholarly": 3},
        {"coherence": 9.4},
        {"fact_checker": 10, "source_credibility": 10, "scholarly": 0.2, "coherence": 0},
    ],
)
def test_final_score_is_bounded_by_component_scores(scores):
    components = {name: SourceScore(score=s, confidence="medium") for name, s in scores.items()}
    final = weighted_final(components, WEIGHTS)

    assert round(min(scores.values())) <= final <= round(max(scores.values()))
    assert 0 <= final <= 10


def test_weighted_final_without_scores_is_neutral():
    assert weighted_final({}, WEIGHTS) == 5
    assert weighted_final({"fact_checker": SourceScore.failed("down")}, WEIGHTS) == 5


@pytest.mark.parametrize(
    "confidences,expected",
    [
        (["high", "high"], "high"),
        (["high", "low"], "medium"),
        (["medium", "low"], "low"),
        (["low"], "low"),
        ([], "low"),
    ],
)
def test_confidence_band(confidences, expected):
    components = {f"s{i}": SourceScore(score=5, confidence=c) for i, c in enumerate(confidences)}
    assert confidence_band(components) == expected
