"""Thumbnail concept models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .base import BaseResponse


class GenerateConceptsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_title: str = Field(alias="videoTitle", max_length=500)

    @field_validator("video_title")
    @classmethod
    def _require_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Video title is required")
        return value


class ConceptDraft(BaseModel):
    """One concept object as emitted by the text model.

    Blank or missing optional fields fall back to their defaults.
    """

    model_config = ConfigDict(extra="ignore")

    name_ar: str | None = None
    name_en: str | None = None
    emotion: str = "curiosity"
    expression: str = "expressive face"
    pose: str = "facing camera"
    scene: str = "close-up"
    background: str = "gradient blur"
    arabic_text: str | None = None
    text_position: str = "top"
    text_style: str = "bold"
    why_it_works: str = "Emotion-driven design"

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned = {}
        for key, value in data.items():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                value = str(value)
            if isinstance(value, str):
                value = value.strip()
            if value is None or value == "":
                continue
            cleaned[key] = value
        return cleaned

    def row_fields(self, concept_number: int) -> dict[str, str]:
        """Column values for a concept at the given 1-based position."""
        name_ar = self.name_ar or self.name_en or f"Concept {concept_number}"
        name_en = self.name_en or self.name_ar or f"Concept {concept_number}"
        return {
            "name_ar": name_ar,
            "name_en": name_en,
            "emotion": self.emotion,
            "expression": self.expression,
            "pose": self.pose,
            "scene": self.scene,
            "background": self.background,
            "arabic_text": self.arabic_text or name_ar,
            "text_position": self.text_position,
            "text_style": self.text_style,
            "why_it_works": self.why_it_works,
        }


class ConceptResponse(BaseResponse):
    """Persisted concept. Use ``id`` to select it for generation."""

    id: UUID = Field(validation_alias=AliasChoices("concept_id", "id"))
    video_title: str
    concept_number: int
    name_ar: str
    name_en: str
    emotion: str
    expression: str
    pose: str
    scene: str
    background: str
    arabic_text: str
    text_position: str
    text_style: str
    why_it_works: str
    session_id: UUID
    created_at: datetime | None = None


class GenerateConceptsResponse(BaseModel):
    success: bool = True
    concepts: list[ConceptResponse]
    session_id: UUID


class ConceptListResponse(BaseModel):
    success: bool = True
    concepts: list[ConceptResponse]
