"""Tests for gallery listing, favorites and downloads."""

from datetime import datetime, timezone
from uuid import uuid4

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from conftest import OWNER_ID, make_result
from thumbcraft.errors import NotFoundError, StudioError
from thumbcraft.services.gallery_service import GalleryService
from thumbcraft_shared.db.models import GeneratedThumbnail

IMAGE_URL = "https://storage.blob.core.windows.net/thumbnails/auth0%7Cuser-1/c_1.png"
IMAGE_BYTES = b"\x89PNG\r\n\x1a\nstored-image"


def make_thumbnail() -> GeneratedThumbnail:
    return GeneratedThumbnail(
        thumbnail_id=uuid4(),
        owner_id=OWNER_ID,
        concept_id=uuid4(),
        storage_path=f"{OWNER_ID}/c_1.png",
        public_url=IMAGE_URL,
        file_size=len(IMAGE_BYTES),
        quality_mode="fast",
        model_used="gpt-image-1",
        generation_time_ms=1200,
        api_cost=0.05,
        download_count=0,
        is_favorited=False,
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def fetched_urls():
    return []


@pytest.fixture
def transport(fetched_urls):
    def handler(request: httpx.Request) -> httpx.Response:
        fetched_urls.append(str(request.url))
        return httpx.Response(200, content=IMAGE_BYTES, headers={"content-type": "image/png"})

    return httpx.MockTransport(handler)


@pytest.fixture
def service(mock_session, transport):
    return GalleryService(mock_session, transport=transport)


@pytest.mark.unit
class TestDownload:
    async def test_repeated_downloads_count_each_time_and_keep_bytes(
        self, service, mock_session, fetched_urls
    ):
        thumbnail = make_thumbnail()
        lookup = make_result(one=thumbnail)
        update = make_result()
        mock_session.execute.side_effect = [lookup, update, lookup, update]

        first = await service.download(OWNER_ID, str(thumbnail.thumbnail_id))
        second = await service.download(OWNER_ID, str(thumbnail.thumbnail_id))

        assert first.content == second.content == IMAGE_BYTES
        assert first.media_type == "image/png"
        assert first.filename == f"thumbnail-{thumbnail.thumbnail_id}.png"
        assert fetched_urls == [IMAGE_URL, IMAGE_URL]
        assert thumbnail.public_url == IMAGE_URL
        assert mock_session.commit.await_count == 2

        update_statements = [
            str(call.args[0]) for call in mock_session.execute.await_args_list[1::2]
        ]
        assert all("download_count" in statement for statement in update_statements)

    async def test_counter_failure_does_not_block_download(self, service, mock_session):
        thumbnail = make_thumbnail()
        mock_session.execute.side_effect = [
            make_result(one=thumbnail),
            OperationalError("UPDATE", {}, Exception("timeout")),
        ]

        image = await service.download(OWNER_ID, thumbnail.thumbnail_id)

        assert image.content == IMAGE_BYTES
        mock_session.rollback.assert_awaited_once()

    async def test_unknown_id_is_not_found(self, service, mock_session, fetched_urls):
        mock_session.execute.return_value = make_result(one=None)

        with pytest.raises(NotFoundError):
            await service.download(OWNER_ID, str(uuid4()))

        assert fetched_urls == []

    async def test_malformed_id_is_not_found(self, service, mock_session):
        with pytest.raises(NotFoundError):
            await service.download(OWNER_ID, "not-a-uuid")

        mock_session.execute.assert_not_awaited()

    async def test_storage_error_is_download_failure(self, mock_session):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        service = GalleryService(mock_session, transport=transport)
        mock_session.execute.side_effect = [make_result(one=make_thumbnail()), make_result()]

        with pytest.raises(StudioError, match="Download failed"):
            await service.download(OWNER_ID, str(uuid4()))


@pytest.mark.unit
class TestGallery:
    async def test_list_returns_rows(self, service, mock_session):
        rows = [make_thumbnail(), make_thumbnail()]
        mock_session.execute.return_value = make_result(rows)

        assert await service.list_thumbnails(OWNER_ID) == rows

    async def test_set_favorite(self, service, mock_session):
        thumbnail = make_thumbnail()
        mock_session.execute.return_value = make_result(one=thumbnail)

        updated = await service.set_favorite(OWNER_ID, thumbnail.thumbnail_id, True)

        assert updated.is_favorited is True
        mock_session.commit.assert_awaited_once()
