"""Tests for thumbnail generation, quota and partial failures."""

import pytest
from sqlalchemy.exc import OperationalError

from conftest import (
    OWNER_ID,
    added_of,
    make_concept,
    make_profile,
    make_reference_image,
    make_result,
)
from thumbcraft.errors import QuotaExhaustedError, TotalBatchFailure, ValidationError
from thumbcraft.services.thumbnail_service import ThumbnailService, build_thumbnail_prompt
from thumbcraft_shared.config import Settings
from thumbcraft_shared.db.models import GeneratedThumbnail, UsageLog


def queue_quality_mode(session, profile, images, concepts):
    session.execute.side_effect = [
        make_result(one=profile),
        make_result(images),
        make_result(concepts),
    ]


def queue_selection_mode(session, images, concepts):
    session.execute.side_effect = [make_result(images), make_result(concepts)]


@pytest.fixture
def service(mock_session, fake_genai, mock_blob_client, settings):
    return ThumbnailService(mock_session, fake_genai, mock_blob_client, settings)


@pytest.fixture
def images():
    return [make_reference_image(score=0.9), make_reference_image(score=0.7)]


@pytest.mark.unit
class TestBuildThumbnailPrompt:
    def test_uses_concept_fields(self):
        concept = make_concept(expression="jaw dropped", arabic_text="مستحيل", text_position="bottom")

        prompt = build_thumbnail_prompt(concept)

        assert "jaw dropped" in prompt
        assert '"مستحيل"' in prompt
        assert "at the bottom of the frame" in prompt


@pytest.mark.unit
class TestGenerateByQuality:
    async def test_quota_exhausted_is_rejected_before_anything(
        self, service, mock_session, fake_genai, mock_blob_client
    ):
        mock_session.execute.side_effect = [make_result(one=make_profile(quota=0))]

        with pytest.raises(QuotaExhaustedError):
            await service.generate_by_quality(OWNER_ID, "fast")

        fake_genai.generate_image.assert_not_awaited()
        mock_blob_client.download_blob.assert_not_called()
        assert added_of(mock_session, GeneratedThumbnail) == []
        assert mock_session.execute.await_count == 1

    @pytest.mark.parametrize("quota, concepts, expected", [(10, 4, 4), (2, 4, 2), (1, 10, 1)])
    async def test_quota_decrements_per_generated_image(
        self, service, mock_session, images, quota, concepts, expected
    ):
        profile = make_profile(quota=quota)
        queue_quality_mode(
            mock_session, profile, images, [make_concept(n) for n in range(1, concepts + 1)]
        )

        result = await service.generate_by_quality(OWNER_ID, "fast")

        assert result.generated == expected
        assert result.generated <= quota
        assert profile.quota_remaining == quota - expected
        assert result.quota_remaining == quota - expected
        assert profile.total_generated == expected
        assert profile.api_cost_total == pytest.approx(0.05 * expected)

    async def test_partial_failure_skips_failed_concept(
        self, service, mock_session, fake_genai, images
    ):
        concepts = [make_concept(n) for n in range(1, 5)]
        profile = make_profile(quota=10)
        queue_quality_mode(mock_session, profile, images, concepts)
        fake_genai.generate_image.side_effect = [
            b"png-1",
            RuntimeError("model refused"),
            b"png-3",
            b"png-4",
        ]

        result = await service.generate_by_quality(OWNER_ID, "fast")

        assert result.generated == 3
        assert [t.concept_id for t in result.thumbnails] == [
            concepts[0].concept_id,
            concepts[2].concept_id,
            concepts[3].concept_id,
        ]
        assert result.outcome.failed_keys == [str(concepts[1].concept_id)]
        assert profile.quota_remaining == 7

        (usage,) = added_of(mock_session, UsageLog)
        assert usage.action_type == "thumbnail_generation"
        assert usage.api_cost == pytest.approx(0.15)
        assert usage.details["requested"] == 4
        assert usage.details["generated"] == 3

    async def test_every_concept_failing_is_total_failure(
        self, service, mock_session, fake_genai, images
    ):
        profile = make_profile(quota=5)
        queue_quality_mode(mock_session, profile, images, [make_concept(1), make_concept(2)])
        fake_genai.generate_image.side_effect = RuntimeError("model down")

        with pytest.raises(TotalBatchFailure):
            await service.generate_by_quality(OWNER_ID, "hd")

        assert profile.quota_remaining == 5
        assert added_of(mock_session, UsageLog) == []

    async def test_persist_failure_skips_item_without_spending_quota(
        self, service, mock_session, mock_blob_client, images
    ):
        profile = make_profile(quota=5)
        queue_quality_mode(mock_session, profile, images, [make_concept(1), make_concept(2)])
        flush_calls = 0
        original_flush = mock_session.flush.side_effect

        async def flaky_flush():
            nonlocal flush_calls
            flush_calls += 1
            if flush_calls == 1:
                raise OperationalError("INSERT", {}, Exception("deadlock"))
            await original_flush()

        mock_session.flush.side_effect = flaky_flush

        result = await service.generate_by_quality(OWNER_ID, "fast")

        assert result.generated == 1
        assert profile.quota_remaining == 4
        (orphan,) = [
            t for t in added_of(mock_session, GeneratedThumbnail) if t not in result.thumbnails
        ]
        mock_blob_client.delete_blob.assert_called_once_with(
            service.settings.storage.thumbnail_container, orphan.storage_path
        )

    async def test_commit_failure_skips_item_and_batch_continues(
        self, service, mock_session, mock_blob_client, images
    ):
        concepts = [make_concept(n) for n in range(1, 5)]
        profile = make_profile(quota=10)
        queue_quality_mode(mock_session, profile, images, concepts)
        # Profile commit, then one per item; the second item's commit fails.
        mock_session.commit.side_effect = [
            None,
            None,
            OperationalError("COMMIT", {}, Exception("connection reset")),
            None,
            None,
            None,
        ]

        async def reload_from_database(obj):
            # The failed commit never stored the second item's quota spend.
            if obj is profile:
                profile.quota_remaining += 1
                profile.total_generated -= 1
                profile.api_cost_total -= 0.05

        mock_session.refresh.side_effect = reload_from_database

        result = await service.generate_by_quality(OWNER_ID, "fast")

        assert result.generated == 3
        assert result.outcome.failed_keys == [str(concepts[1].concept_id)]
        assert profile.quota_remaining == 7
        assert result.quota_remaining == 7
        assert profile.total_generated == 3
        mock_session.rollback.assert_awaited_once()
        mock_session.refresh.assert_any_await(result.thumbnails[0])

        (usage,) = added_of(mock_session, UsageLog)
        assert usage.details["generated"] == 3
        assert usage.details["failed_concept_ids"] == [str(concepts[1].concept_id)]
        assert usage.api_cost == pytest.approx(0.15)

        (orphan,) = [
            t
            for t in added_of(mock_session, GeneratedThumbnail)
            if t.concept_id == concepts[1].concept_id
        ]
        mock_blob_client.delete_blob.assert_called_once_with(
            service.settings.storage.thumbnail_container, orphan.storage_path
        )

    async def test_usage_commit_failure_still_returns_generated_thumbnails(
        self, service, mock_session, mock_blob_client, images
    ):
        profile = make_profile(quota=5)
        queue_quality_mode(mock_session, profile, images, [make_concept(1), make_concept(2)])
        mock_session.commit.side_effect = [
            None,
            None,
            None,
            OperationalError("COMMIT", {}, Exception("connection reset")),
        ]

        result = await service.generate_by_quality(OWNER_ID, "fast")

        assert result.generated == 2
        assert result.quota_remaining == 3
        mock_session.rollback.assert_awaited_once()
        mock_blob_client.delete_blob.assert_not_called()

    async def test_orphan_cleanup_failure_does_not_abort_batch(
        self, service, mock_session, mock_blob_client, images
    ):
        profile = make_profile(quota=5)
        queue_quality_mode(mock_session, profile, images, [make_concept(1), make_concept(2)])
        mock_session.commit.side_effect = [
            None,
            OperationalError("COMMIT", {}, Exception("connection reset")),
            None,
            None,
        ]
        mock_blob_client.delete_blob.side_effect = RuntimeError("storage unavailable")

        result = await service.generate_by_quality(OWNER_ID, "fast")

        assert result.generated == 1
        mock_blob_client.delete_blob.assert_called_once()

    async def test_hd_mode_cost_and_quality(
        self, service, mock_session, fake_genai, mock_blob_client, images
    ):
        queue_quality_mode(mock_session, make_profile(quota=5), images, [make_concept(1)])

        result = await service.generate_by_quality(OWNER_ID, "hd")

        assert mock_blob_client.upload_blob.call_args.kwargs["overwrite"] is True
        thumbnail = result.thumbnails[0]
        assert thumbnail.quality_mode == "hd"
        assert thumbnail.api_cost == 0.24
        assert thumbnail.model_used == "gpt-image-1"
        assert thumbnail.storage_path.startswith(f"{OWNER_ID}/{thumbnail.concept_id}_")
        assert thumbnail.storage_path.endswith(".png")
        assert fake_genai.generate_image.await_args.kwargs["quality"] == "high"

    async def test_references_sent_with_each_render(
        self, service, mock_session, fake_genai, mock_blob_client, images
    ):
        queue_quality_mode(mock_session, make_profile(quota=5), images, [make_concept(1)])

        await service.generate_by_quality(OWNER_ID, "fast")

        references = fake_genai.generate_image.await_args.args[1]
        assert len(references) == 2
        assert mock_blob_client.download_blob.call_count == 2

    async def test_no_selected_images(self, service, mock_session):
        mock_session.execute.side_effect = [make_result(one=make_profile(quota=3)), make_result([])]

        with pytest.raises(ValidationError, match="No selected reference images"):
            await service.generate_by_quality(OWNER_ID, "fast")

    async def test_no_concepts(self, service, mock_session, images):
        queue_quality_mode(mock_session, make_profile(quota=3), images, [])

        with pytest.raises(ValidationError, match="No concepts found"):
            await service.generate_by_quality(OWNER_ID, "fast")


@pytest.mark.unit
class TestGenerateForConcepts:
    async def test_keeps_caller_order_and_ignores_quota(
        self, service, mock_session, fake_genai, images
    ):
        concepts = [make_concept(n) for n in range(1, 4)]
        queue_selection_mode(mock_session, images, concepts)
        wanted = [concepts[2].concept_id, concepts[0].concept_id]

        result = await service.generate_for_concepts(OWNER_ID, wanted)

        assert [t.concept_id for t in result.thumbnails] == wanted
        assert result.quota_remaining is None
        assert all(t.quality_mode == "fast" for t in result.thumbnails)

    async def test_unknown_ids_are_rejected(self, service, mock_session, images):
        queue_selection_mode(mock_session, images, [])

        with pytest.raises(ValidationError, match="No concepts found"):
            await service.generate_for_concepts(OWNER_ID, [make_concept().concept_id])

    async def test_enforced_quota_gates_selection(
        self, mock_session, fake_genai, mock_blob_client, images
    ):
        settings = Settings()
        settings.generation.enforce_quota_for_selection = True
        service = ThumbnailService(mock_session, fake_genai, mock_blob_client, settings)
        profile = make_profile(quota=1)
        concepts = [make_concept(1), make_concept(2)]
        mock_session.execute.side_effect = [
            make_result(one=profile),
            make_result(images),
            make_result(concepts),
        ]

        result = await service.generate_for_concepts(
            OWNER_ID, [c.concept_id for c in concepts]
        )

        assert result.generated == 1
        assert profile.quota_remaining == 0
