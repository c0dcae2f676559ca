import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

truthcheck_documents_analyzed_total = Counter("truthcheck_documents_analyzed_total", "Documents analyzed")
truthcheck_claims_scored_total = Counter("truthcheck_claims_scored_total", "Claims scored end to end")
truthcheck_claims_failed_total = Counter("truthcheck_claims_failed_total", "Claims dropped after a processing error")
truthcheck_source_calls_total = Counter(
    "truthcheck_source_calls_total",
    "Evidence source calls by source and status",
    ["source", "status"],
)
truthcheck_external_calls_total = Counter(
    "truthcheck_external_calls_total",
    "Lookup provider HTTP calls by provider and status",
    ["provider", "status"],
)
truthcheck_llm_calls_total = Counter(
    "truthcheck_llm_calls_total",
    "LLM calls by purpose and status",
    ["purpose", "status"],
)
truthcheck_cache_requests_total = Counter(
    "truthcheck_cache_requests_total",
    "Cache lookups by result",
    ["result"],
)
truthcheck_stage_duration_seconds = Histogram(
    "truthcheck_stage_duration_seconds",
    "Pipeline stage duration seconds",
    ["stage"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)


@contextmanager
def stage_timer(stage: str):
    start = time.perf_counter()
    try:
        yield
    finally:
        truthcheck_stage_duration_seconds.labels(stage=stage).observe(time.perf_counter() - start)
