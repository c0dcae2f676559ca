"""
Common utilities shared across extraction, normalization and scoring.

Modules:
    - segmentation: Sentence segmentation with abbreviation handling
    - text_cleaner: Text normalization and token similarity
    - list_ops: List deduplication and chunking
    - dedup: Similarity-based deduplication
    - cache: TTL cache store and stable key hashing
    - retry: Retry with backoff and circuit breaker
    - http_client: JSON-over-HTTP client for lookup providers
"""
