"""Concept generation from a video title."""

import uuid
from dataclasses import dataclass
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from thumbcraft_shared.config import Settings, get_settings
from thumbcraft_shared.db.models import Concept
from thumbcraft_shared.genai import (
    GenAIClient,
    JsonArrayExtractor,
    StructuredResponseExtractor,
    UpstreamParseError,
)
from thumbcraft_shared.logging import LogContext, get_logger

from ..dependencies.profile import ACTION_CONCEPT_GENERATION, record_usage
from ..models.concept import ConceptDraft

logger = get_logger(__name__)

EMOTION_SPREAD = (
    "shock",
    "curiosity",
    "frustration",
    "excitement",
    "confusion",
    "anger",
    "hope",
    "fear",
    "surprise",
    "satisfaction",
)

CONCEPT_PROMPT_TEMPLATE = """Generate {count} emotion-based YouTube thumbnail concepts for this video: "{title}"

Focus on pain points and emotions that make viewers click. For each concept, provide:
1. Arabic name (2-4 words, attention-grabbing)
2. English translation
3. Emotion to convey
4. Facial expression, pose, scene and background
5. Short Arabic overlay text with its position and style
6. Why it works psychologically

Respond with ONLY a JSON array in this exact format:
[
  {{
    "name_ar": "الصدمة الكبرى",
    "name_en": "The Big Shock",
    "emotion": "shock",
    "expression": "wide eyes, open mouth, hand on cheek",
    "pose": "facing camera, slight head tilt",
    "scene": "close-up face shot",
    "background": "bright gradient blur",
    "arabic_text": "الصدمة",
    "text_position": "top-right",
    "text_style": "bold white with black outline",
    "why_it_works": "Shock triggers curiosity and fear of missing out"
  }}
]

Generate all {count} concepts with variety in emotions: {emotions}."""


def build_concept_prompt(video_title: str, count: int = 10) -> str:
    """Fill the concept prompt template for one video title."""
    return CONCEPT_PROMPT_TEMPLATE.format(
        count=count,
        title=video_title.replace('"', "'"),
        emotions=", ".join(EMOTION_SPREAD),
    )


def parse_concepts(
    text: str,
    extractor: StructuredResponseExtractor | None = None,
    limit: int = 10,
) -> list[ConceptDraft]:
    """Parse model text into at most ``limit`` concept drafts.

    Raises:
        UpstreamParseError: If no array is found, it is empty, or an entry
            is not a concept object.
    """
    payload = (extractor or JsonArrayExtractor()).extract(text)
    if not payload:
        raise UpstreamParseError("Model returned no concepts")

    drafts = []
    for number, item in enumerate(payload[:limit], start=1):
        try:
            drafts.append(ConceptDraft.model_validate(item))
        except PydanticValidationError as exc:
            raise UpstreamParseError(f"Concept {number} is malformed") from exc
    return drafts


@dataclass
class ConceptBatch:
    session_id: UUID
    concepts: list[Concept]


class ConceptService:
    """Writes concepts with the text model and persists them as one batch."""

    def __init__(
        self,
        session: AsyncSession,
        genai: GenAIClient,
        settings: Settings | None = None,
        extractor: StructuredResponseExtractor | None = None,
    ):
        self.session = session
        self.genai = genai
        self.settings = settings or get_settings()
        self.extractor = extractor or JsonArrayExtractor()

    async def generate_concepts(self, owner_id: str, video_title: str) -> ConceptBatch:
        """Generate, persist and log one batch of concepts.

        Nothing is persisted if the model response can't be parsed.

        Raises:
            UpstreamParseError: If the response holds no usable concept array.
        """
        limit = self.settings.generation.max_concepts
        text = await self.genai.generate_text(build_concept_prompt(video_title, limit))
        drafts = parse_concepts(text, self.extractor, limit)

        session_id = uuid.uuid4()
        concepts = [
            Concept(
                owner_id=owner_id,
                video_title=video_title,
                concept_number=number,
                session_id=session_id,
                **draft.row_fields(number),
            )
            for number, draft in enumerate(drafts, start=1)
        ]
        self.session.add_all(concepts)
        await self.session.flush()

        with LogContext(owner_id=owner_id, session_id=str(session_id)):
            await record_usage(
                self.session,
                owner_id,
                ACTION_CONCEPT_GENERATION,
                self.settings.generation.concept_cost,
                {
                    "video_title": video_title,
                    "concepts_generated": len(concepts),
                    "session_id": str(session_id),
                },
            )
            await self.session.commit()
            logger.info("Generated concepts", count=len(concepts))

        return ConceptBatch(session_id=session_id, concepts=concepts)

    async def list_concepts(self, owner_id: str, session_id: UUID | None = None) -> list[Concept]:
        """The caller's concepts, newest batch first, in ordinal order."""
        query = select(Concept).where(Concept.owner_id == owner_id)
        if session_id is not None:
            query = query.where(Concept.session_id == session_id)
        query = query.order_by(Concept.created_at.desc(), Concept.concept_number.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())
