"""
Authoritative and rated news domains used by the override evaluator and the credibility source.
"""

from typing import Optional
from urllib.parse import urlparse

# Sources whose content may override the aggregate score
AUTHORITATIVE_DOMAINS = {
    "nih.gov",
    "cdc.gov",
    "who.int",
    "fda.gov",
    "britannica.com",
    "wikipedia.org",
    "pubmed.ncbi.nlm.nih.gov",
}

# Factual-reporting ratings in the vocabulary used by media bias raters
DOMAIN_FACTUAL_REPORTING = {
    "apnews.com": "very high",
    "reuters.com": "very high",
    "bbc.com": "high",
    "bbc.co.uk": "high",
    "npr.org": "high",
    "nature.com": "very high",
    "science.org": "very high",
    "theguardian.com": "mixed",
    "nytimes.com": "high",
    "washingtonpost.com": "high",
    "wsj.com": "high",
    "cnn.com": "mixed",
    "foxnews.com": "mixed",
    "dailymail.co.uk": "low",
    "breitbart.com": "low",
    "infowars.com": "very low",
    "naturalnews.com": "very low",
    "theonion.com": "low",
}


def normalize_domain(url_or_domain: str) -> Optional[str]:
    if not url_or_domain:
        return None
    value = url_or_domain.strip().lower()
    if "://" in value:
        value = urlparse(value).netloc
    value = value.split("/")[0].split(":")[0]
    if value.startswith("www."):
        value = value[4:]
    return value or None


def matches_domain(domain: str, roots: set) -> Optional[str]:
    """Return the root from `roots` that `domain` equals or is a subdomain of."""
    d = normalize_domain(domain)
    if not d:
        return None
    for root in sorted(roots, key=len, reverse=True):
        if d == root or d.endswith("." + root):
            return root
    return None


def is_authoritative_domain(url_or_domain: str) -> bool:
    return matches_domain(url_or_domain, AUTHORITATIVE_DOMAINS) is not None


def factual_reporting_for(url_or_domain: str) -> Optional[str]:
    root = matches_domain(url_or_domain, set(DOMAIN_FACTUAL_REPORTING))
    return DOMAIN_FACTUAL_REPORTING.get(root) if root else None
