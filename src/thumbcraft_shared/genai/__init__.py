"""Generative-AI client and structured response extraction."""

from .client import (
    GenAIClient,
    ReferencePhoto,
    call_with_retry,
    get_client,
    get_genai_client,
    is_rate_limit_error,
)
from .errors import (
    GenAIConfigurationError,
    GenAIError,
    MaxRetriesExceededError,
    NoImageInResponseError,
    UpstreamParseError,
)
from .extraction import JsonArrayExtractor, JsonObjectExtractor, StructuredResponseExtractor

__all__ = [
    "GenAIClient",
    "GenAIConfigurationError",
    "GenAIError",
    "JsonArrayExtractor",
    "JsonObjectExtractor",
    "MaxRetriesExceededError",
    "NoImageInResponseError",
    "ReferencePhoto",
    "StructuredResponseExtractor",
    "UpstreamParseError",
    "call_with_retry",
    "get_client",
    "get_genai_client",
    "is_rate_limit_error",
]
