"""Base Pydantic response models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BaseResponse(BaseModel):
    """Base response model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error: str = Field(description="Human-readable error message")
    correlation_id: str | None = Field(default=None, description="Request correlation ID")
    details: list[dict[str, Any]] | None = Field(
        default=None, description="Field errors for request validation failures"
    )

    @classmethod
    def body(
        cls,
        message: str,
        correlation_id: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Build the JSON body, leaving out empty optional keys."""
        return cls(error=message, correlation_id=correlation_id, details=details).model_dump(
            exclude_none=True
        )
