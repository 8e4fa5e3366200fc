"""Pytest configuration and fixtures."""

from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from thumbcraft.dependencies import AuthenticatedUser, require_auth
from thumbcraft.main import include_routers, register_exception_handlers
from thumbcraft.middleware import CorrelationIdMiddleware
from thumbcraft.routes.upload import get_optional_genai_client
from thumbcraft_shared.blob import get_blob_client
from thumbcraft_shared.config import Settings
from thumbcraft_shared.db import get_session
from thumbcraft_shared.db.models import Concept, ReferenceImage, UserProfile
from thumbcraft_shared.genai import get_genai_client

OWNER_ID = "auth0|user-1"


# ============================================================================
# Database Fixtures
# ============================================================================


def make_result(rows: list[Any] | None = None, one: Any = None) -> MagicMock:
    """Build an object that mimics a SQLAlchemy Result."""
    result = MagicMock()
    scalars = MagicMock()
    scalars.all.return_value = list(rows or [])
    result.scalars.return_value = scalars
    result.scalar_one_or_none.return_value = one
    return result


def _assign_defaults(obj: Any) -> None:
    """Do what the database would on insert: primary key and timestamp."""
    pk = type(obj).__mapper__.primary_key[0].key
    if getattr(obj, pk, None) is None:
        setattr(obj, pk, uuid4())
    if hasattr(obj, "created_at") and obj.created_at is None:
        obj.created_at = datetime.now(timezone.utc)


@pytest.fixture
def mock_session():
    """Create a mock database session for testing.

    Objects passed to ``add``/``add_all`` are recorded in ``session.added``
    and get ids and timestamps on ``flush``.
    """
    session = AsyncMock()
    session.added = []

    def _add(obj: Any) -> None:
        session.added.append(obj)

    def _add_all(objs: list[Any]) -> None:
        session.added.extend(objs)

    async def _flush() -> None:
        for obj in session.added:
            _assign_defaults(obj)

    nested = MagicMock()
    nested.__aenter__ = AsyncMock(return_value=None)
    nested.__aexit__ = AsyncMock(return_value=False)

    session.execute = AsyncMock(return_value=make_result())
    session.add = MagicMock(side_effect=_add)
    session.add_all = MagicMock(side_effect=_add_all)
    session.flush = AsyncMock(side_effect=_flush)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.close = AsyncMock()
    session.begin_nested = MagicMock(return_value=nested)
    return session


def added_of(session: Any, model: type) -> list[Any]:
    """Rows of one model type that a test session recorded."""
    return [obj for obj in session.added if isinstance(obj, model)]


# ============================================================================
# External Service Fixtures
# ============================================================================


@pytest.fixture
def mock_blob_client():
    """Create a mock blob client."""
    client = MagicMock()
    client.upload_blob = MagicMock(
        side_effect=lambda container, name, *args, **kwargs: (
            f"https://storage.blob.core.windows.net/{container}/{name}"
        )
    )
    client.download_blob = MagicMock(return_value=b"reference-bytes")
    return client


@pytest.fixture
def fake_genai():
    """Create a generative-AI client double with canned responses."""
    client = MagicMock()
    client.image_model = "gpt-image-1"
    client.generate_text = AsyncMock(return_value="[]")
    client.analyze_image = AsyncMock(
        return_value='{"quality_score": 0.9, "notes": "Sharp and well lit"}'
    )
    client.generate_image = AsyncMock(return_value=b"\x89PNG-bytes")
    return client


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the process environment cache."""
    return Settings()


# ============================================================================
# Sample Data Fixtures
# ============================================================================


def make_concept(number: int = 1, owner_id: str = OWNER_ID, **overrides: Any) -> Concept:
    fields = {
        "concept_id": uuid4(),
        "owner_id": owner_id,
        "video_title": "How I doubled my channel in 30 days",
        "concept_number": number,
        "name_ar": f"مفهوم {number}",
        "name_en": f"Concept {number}",
        "emotion": "shock",
        "expression": "wide eyes, open mouth",
        "pose": "facing camera",
        "scene": "close-up",
        "background": "gradient blur",
        "arabic_text": "الصدمة",
        "text_position": "top",
        "text_style": "bold",
        "why_it_works": "Shock triggers curiosity",
        "session_id": uuid4(),
        "created_at": datetime.now(timezone.utc),
    }
    fields.update(overrides)
    return Concept(**fields)


def make_reference_image(owner_id: str = OWNER_ID, score: float = 0.9) -> ReferenceImage:
    image_id = uuid4()
    return ReferenceImage(
        image_id=image_id,
        owner_id=owner_id,
        storage_path=f"{owner_id}/1700000000000_0_{image_id}.jpg",
        public_url=f"https://storage.blob.core.windows.net/reference-images/{image_id}.jpg",
        file_size=2048,
        mime_type="image/jpeg",
        quality_score=score,
        analysis_notes="Sharp",
        is_selected=True,
        created_at=datetime.now(timezone.utc),
    )


def make_profile(quota: int, owner_id: str = OWNER_ID) -> UserProfile:
    return UserProfile(
        profile_id=uuid4(),
        owner_id=owner_id,
        email="creator@example.com",
        quota_remaining=quota,
        total_generated=0,
        api_cost_total=0.0,
    )


@pytest.fixture
def user() -> AuthenticatedUser:
    return AuthenticatedUser(
        sub=OWNER_ID,
        email="creator@example.com",
        name="Creator",
        raw={"sub": OWNER_ID},
    )


@pytest.fixture
def correlation_id() -> str:
    return str(uuid4())


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(mock_session, mock_blob_client, fake_genai) -> FastAPI:
    """Create a FastAPI test application with mocked dependencies.

    Authentication is NOT overridden here; use ``authed_app`` for that.
    """

    @asynccontextmanager
    async def mock_lifespan(app: FastAPI):
        app.state.db_initialized = False
        yield

    application = FastAPI(title="Thumbcraft API", version="0.1.0", lifespan=mock_lifespan)
    application.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(application)
    include_routers(application)

    async def mock_get_session():
        yield mock_session

    application.dependency_overrides[get_session] = mock_get_session
    application.dependency_overrides[get_blob_client] = lambda: mock_blob_client
    application.dependency_overrides[get_genai_client] = lambda: fake_genai
    application.dependency_overrides[get_optional_genai_client] = lambda: fake_genai
    return application


@pytest.fixture
def authed_app(app, user) -> FastAPI:
    app.dependency_overrides[require_auth] = lambda: user
    return app


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Test client with no session cookie."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def authed_client(authed_app) -> Generator[TestClient, None, None]:
    """Test client whose requests resolve to the ``user`` fixture."""
    with TestClient(authed_app) as test_client:
        yield test_client
