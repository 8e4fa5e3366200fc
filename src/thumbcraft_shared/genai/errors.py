"""Errors raised by the generative-AI client and response extraction."""


class GenAIError(Exception):
    """Base class for generative-AI failures."""


class GenAIConfigurationError(GenAIError):
    """The API key (or other required setting) is missing."""


class MaxRetriesExceededError(GenAIError):
    """Every attempt of a call was rate limited."""


class NoImageInResponseError(GenAIError):
    """The image model answered without image data."""


class UpstreamParseError(GenAIError):
    """A model response did not contain the expected structured payload."""
