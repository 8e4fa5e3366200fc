"""Structured payload extraction from free-text model output.

Models asked for JSON often wrap it in prose or code fences. Extractors
locate the payload span and parse it, failing with ``UpstreamParseError``
so callers never see a raw ``json.JSONDecodeError``. Swapping in another
strategy (e.g. constrained decoding) only needs a new extractor.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from .errors import UpstreamParseError


class StructuredResponseExtractor(ABC):
    """Pulls one structured value out of model text."""

    @abstractmethod
    def extract(self, text: str) -> Any:
        """Return the parsed payload or raise UpstreamParseError."""


class _SpanExtractor(StructuredResponseExtractor):
    pattern: re.Pattern[str]
    expected_type: type
    kind: str

    def extract(self, text: str) -> Any:
        match = self.pattern.search(text or "")
        if not match:
            raise UpstreamParseError(f"No JSON {self.kind} found in model response")
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise UpstreamParseError(f"Model returned malformed JSON {self.kind}: {exc.msg}") from exc
        if not isinstance(payload, self.expected_type):
            raise UpstreamParseError(f"Model response is not a JSON {self.kind}")
        return payload


class JsonArrayExtractor(_SpanExtractor):
    """Takes the span from the first ``[`` to the last ``]``."""

    pattern = re.compile(r"\[[\s\S]*\]")
    expected_type = list
    kind = "array"


class JsonObjectExtractor(_SpanExtractor):
    """Takes the span from the first ``{`` to the last ``}``."""

    pattern = re.compile(r"\{[\s\S]*\}")
    expected_type = dict
    kind = "object"
