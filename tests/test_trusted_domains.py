import pytest

from truthcheck.config.trusted_domains import (
    factual_reporting_for,
    is_authoritative_domain,
    matches_domain,
    normalize_domain,
)
from truthcheck.core.config import Settings


@pytest.mark.parametrize(
    "value,expected",
    [
        ("https://www.CDC.gov/flu/index.html", "cdc.gov"),
        ("en.wikipedia.org:443", "en.wikipedia.org"),
        ("www.reuters.com", "reuters.com"),
        ("", None),
    ],
)
def test_normalize_domain(value, expected):
    assert normalize_domain(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("cdc.gov", True),
        ("https://en.wikipedia.org/wiki/Measles", True),
        ("pubmed.ncbi.nlm.nih.gov", True),
        ("notcdc.gov", False),
        ("wikipedia.org.evil.com", False),
    ],
)
def test_is_authoritative_domain(value, expected):
    assert is_authoritative_domain(value) is expected


def test_matches_domain_prefers_the_longest_root():
    roots = {"nih.gov", "pubmed.ncbi.nlm.nih.gov"}
    assert matches_domain("pubmed.ncbi.nlm.nih.gov", roots) == "pubmed.ncbi.nlm.nih.gov"
    assert matches_domain("www.nih.gov", roots) == "nih.gov"


def test_factual_reporting_for():
    assert factual_reporting_for("https://www.bbc.co.uk/news") == "high"
    assert factual_reporting_for("some-blog.net") is None


def test_source_weights_follow_profile_and_flags():
    four = Settings(_env_file=None).source_weights()
    assert four == {"fact_checker": 0.35, "source_credibility": 0.20, "scholarly": 0.30, "coherence": 0.15}

    three = Settings(_env_file=None, SCORING_PROFILE="three_source").source_weights()
    assert three == {"ai": 0.40, "source_credibility": 0.30, "scholarly": 0.30}

    no_ai = Settings(_env_file=None, SCORING_PROFILE="three_source", AI_ENABLED=False).source_weights()
    assert no_ai == {"source_credibility": 0.30, "scholarly": 0.30}

    no_facts = Settings(_env_file=None, FACT_CHECKER_ENABLED=False).source_weights()
    assert "fact_checker" not in no_facts
