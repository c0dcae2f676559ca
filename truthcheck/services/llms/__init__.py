"""LLM client, JSON response parsing and provider factory."""

from truthcheck.services.llms.factory import LLMClient, build_llm_service
from truthcheck.services.llms.parsing import LLMResponse, parse_json_loose, unwrap_json

__all__ = ["LLMClient", "LLMResponse", "build_llm_service", "parse_json_loose", "unwrap_json"]
