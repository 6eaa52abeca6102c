"""Tests for lifestyle_studio.core.session - the per-user state owner.

Tests cover:
- Product photo and template management.
- Settings updates and batch size validation.
- Fresh generation, refinement and the results split.
- Error recording and the single-batch-in-flight rule.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from lifestyle_studio.core.errors import (
    NO_PRODUCT_IMAGES_MESSAGE,
    GenerationError,
    GenerationInProgressError,
    ImageEncodingError,
    ValidationError,
)
from lifestyle_studio.core.image_service import ImageService
from lifestyle_studio.core.options import FamilyComposition, OutputAspectRatio, SceneType
from lifestyle_studio.core.prompt_builder import TEMPLATE_CLAUSE
from lifestyle_studio.core.session import StudioSession


def _run(coro):
    return asyncio.run(coro)


class TestProductPhotos:
    def test_add_and_remove(self, product_image):
        session = StudioSession()
        first = session.add_product_photo(product_image, "a.png")
        second = session.add_product_photo(product_image, "b.png")
        assert [p.filename for p in session.product_photos] == ["a.png", "b.png"]
        assert first.id != second.id

        assert session.remove_product_photo(first.id) is True
        assert [p.id for p in session.product_photos] == [second.id]

    def test_remove_unknown(self, session):
        assert session.remove_product_photo("nope") is False
        assert len(session.product_photos) == 1

    def test_clear(self, session):
        session.clear_product_photos()
        assert session.product_images == []

    def test_add_file(self, png_file: Path):
        session = StudioSession()
        photo = _run(session.add_product_file(png_file))
        assert photo.filename == "tent.png"
        assert session.product_images[0].media_type == "image/png"

    def test_bad_file_records_error(self, temp_dir: Path):
        session = StudioSession()
        with pytest.raises(ImageEncodingError):
            _run(session.add_product_file(temp_dir / "missing.png"))
        assert session.product_photos == []
        assert "missing.png" in session.error

    def test_photo_dict(self, session):
        data = session.product_photos[0].to_dict()
        assert data["filename"] == "tent.png"
        assert data["media_type"] == "image/png"


class TestTemplate:
    def test_set_replaces(self, session, template_image, product_image):
        session.set_template(template_image, "old.png")
        session.set_template(product_image, "new.png")
        assert session.template.filename == "new.png"

    def test_set_from_file(self, session, jpeg_file):
        _run(session.set_template_file(jpeg_file))
        assert session.template.image.media_type == "image/jpeg"

    def test_clear(self, session, template_image):
        session.set_template(template_image)
        session.clear_template()
        assert session.template is None


class TestSettings:
    def test_defaults(self):
        session = StudioSession()
        assert session.batch_size == 3
        assert session.config.scene is SceneType.LAWN

    @pytest.mark.parametrize("size", [1, 3, 5, 8])
    def test_valid_batch_sizes(self, size):
        session = StudioSession()
        session.set_batch_size(size)
        assert session.batch_size == size

    @pytest.mark.parametrize("size", [0, 2, 9])
    def test_invalid_batch_size(self, size):
        session = StudioSession()
        with pytest.raises(ValidationError):
            session.set_batch_size(size)
        assert session.batch_size == 3

    def test_constructor_validates_batch_size(self):
        with pytest.raises(ValidationError):
            StudioSession(batch_size=4)

    def test_update_subset(self, session):
        session.update_config(aspect_ratio="16:9", freeform_note="光线偏暖")
        assert session.config.aspect_ratio is OutputAspectRatio.CINEMATIC_H
        assert session.config.freeform_note == "光线偏暖"
        assert session.config.scene is SceneType.LAWN

    def test_update_rejects_invalid_value_atomically(self, session):
        with pytest.raises(ValidationError):
            session.update_config(freeform_note="kept?", scene="月球表面")
        assert session.config.freeform_note == ""

    def test_update_rejects_unknown_field(self, session):
        with pytest.raises(ValidationError, match="colour"):
            session.update_config(colour="red")

    def test_repr(self, session):
        assert "photos=1" in repr(session)


class TestGeneration:
    def test_fresh_batch_uses_batch_size(self, session, fake_service):
        session.set_batch_size(5)
        artifacts = _run(session.run_generation(fake_service))
        assert len(artifacts) == 5
        assert fake_service.call_count == 5
        assert len(session.current_results()) == 5
        assert session.history_results() == []
        assert session.error is None
        assert session.progress is None

    def test_no_photos(self, fake_service):
        session = StudioSession()
        with pytest.raises(ValidationError):
            _run(session.run_generation(fake_service))
        assert session.error == NO_PRODUCT_IMAGES_MESSAGE
        assert fake_service.call_count == 0
        assert not session.is_generating

    def test_failure_records_error(self, session, service_factory):
        service = service_factory(fail_on=[0], error=GenerationError("quota exceeded"))
        with pytest.raises(GenerationError):
            _run(session.run_generation(service))
        assert session.error == "quota exceeded"
        assert len(session.history) == 0
        assert session.progress is None

    def test_success_clears_previous_error(self, session, fake_service):
        session.error = "old"
        _run(session.run_generation(fake_service))
        assert session.error is None

    def test_template_included(self, session, fake_service, template_image):
        session.set_template(template_image)
        _run(session.run_generation(fake_service))
        assert TEMPLATE_CLAUSE in fake_service.requests[0].instruction

    def test_refine_targets_primary(self, session, fake_service):
        _run(session.run_generation(fake_service))
        primary = session.history.primary

        fake_service.requests.clear()
        session.update_config(family_composition=FamilyComposition.COUPLE)
        artifacts = _run(session.run_generation(fake_service, refine=True))

        assert len(artifacts) == 1
        request = fake_service.requests[0]
        assert request.instruction.startswith("【指令：修改并精修图像】")
        assert request.image_parts[1].data == primary.image_url.partition(",")[2]
        assert session.history.primary.id == artifacts[0].id
        assert len(session.history) == 4

    def test_refine_without_artifacts_composes_fresh(self, session, fake_service):
        artifacts = _run(session.run_generation(fake_service, refine=True))
        assert len(artifacts) == 1
        assert fake_service.requests[0].instruction.startswith("【指令：创作")

    def test_results_split_follows_live_batch_size(self, session, fake_service):
        _run(session.run_generation(fake_service))
        _run(session.run_generation(fake_service))
        assert len(session.current_results()) == 3
        assert len(session.history_results()) == 3

        session.set_batch_size(1)
        assert len(session.current_results()) == 1
        assert len(session.history_results()) == 5

    def test_promote(self, session, fake_service):
        _run(session.run_generation(fake_service))
        last = session.history.artifacts[-1]
        assert session.promote(last.id) is True
        assert session.history.primary.id == last.id
        assert session.promote("missing") is False

    def test_progress_listener(self, session, fake_service):
        seen = []
        _run(session.run_generation(fake_service, on_progress=lambda p: seen.append(p.to_dict())))
        assert seen[-1] == {"completed": 3, "total": 3}


class _BlockingService(ImageService):
    name = "blocking"

    def __init__(self, image_url: str) -> None:
        self.image_url = image_url
        self.release = asyncio.Event()

    async def generate(self, request):
        await self.release.wait()
        return self.image_url


class TestSingleBatchInFlight:
    def test_second_batch_rejected(self, session, image_uri):
        async def scenario():
            service = _BlockingService(image_uri())
            first = asyncio.create_task(session.run_generation(service))
            await asyncio.sleep(0)
            assert session.is_generating
            assert session.progress.to_dict() == {"completed": 0, "total": 3}

            with pytest.raises(GenerationInProgressError):
                await session.run_generation(service)

            service.release.set()
            return await first

        artifacts = _run(scenario())
        assert len(artifacts) == 3
        assert not session.is_generating

    def test_edits_while_in_flight_apply_to_next_batch(self, session, image_uri):
        async def scenario():
            service = _BlockingService(image_uri())
            task = asyncio.create_task(session.run_generation(service))
            await asyncio.sleep(0)
            session.update_config(family_composition=FamilyComposition.NONE)
            service.release.set()
            return await task

        artifacts = _run(scenario())
        assert all(a.prompt_summary.endswith("欧美人一家四口") for a in artifacts)
        assert session.config.family_composition is FamilyComposition.NONE
