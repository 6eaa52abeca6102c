"""Tests for lifestyle_studio.ui.handlers - Gradio event handlers.

Handlers are plain (async) functions, so they are called directly with the
values Gradio would pass.  Select events are stood in for by a namespace with
an ``index`` attribute.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from PIL import Image

from lifestyle_studio.core.config import config
from lifestyle_studio.core.errors import SafetyRejectionError
from lifestyle_studio.core.session import StudioSession
from lifestyle_studio.ui.handlers import (
    IDLE_STATUS,
    NOTHING_TO_DOWNLOAD,
    download_current,
    download_primary,
    promote_current,
    promote_history,
    render_results,
    run_generation,
    set_template_image,
    sync_product_photos,
    update_settings,
)
from lifestyle_studio.ui.state import create_session, initialize_session


def _run(coro):
    return asyncio.run(coro)


class TestInitializeSession:
    def test_creates_session(self):
        session = initialize_session(None)
        assert isinstance(session, StudioSession)
        assert session.batch_size == config.default_batch_size

    def test_returns_existing(self, session):
        assert initialize_session(session) is session

    def test_each_tab_gets_its_own_session(self):
        first, second = create_session(), create_session()
        assert first is not second
        assert first.batch_size == config.default_batch_size
        assert first.history is not second.history


class TestProductPhotos:
    def test_sync_replaces_selection(self, png_file: Path, jpeg_file: Path):
        status, session = _run(sync_product_photos([str(png_file), str(jpeg_file)], None))
        assert "2" in status
        assert [p.filename for p in session.product_photos] == ["tent.png", "gazebo.jpg"]

        status, session = _run(sync_product_photos([str(jpeg_file)], session))
        assert [p.filename for p in session.product_photos] == ["gazebo.jpg"]

    def test_empty_picker_clears(self, session):
        status, session = _run(sync_product_photos(None, session))
        assert session.product_photos == []
        assert status == IDLE_STATUS

    def test_bad_file_reported_and_skipped(self, png_file: Path, temp_dir: Path):
        bad = temp_dir / "notes.txt"
        bad.write_text("not an image")
        status, session = _run(sync_product_photos([str(png_file), str(bad)], None))
        assert status.startswith("❌")
        assert "notes.txt" in status
        assert [p.filename for p in session.product_photos] == ["tent.png"]


class TestTemplate:
    def test_set_and_clear(self, png_file: Path):
        status, session = _run(set_template_image(str(png_file), None))
        assert session.template is not None
        assert status.startswith("✅")

        status, session = _run(set_template_image(None, session))
        assert session.template is None

    def test_bad_template(self, temp_dir: Path):
        status, session = _run(set_template_image(str(temp_dir / "gone.png"), None))
        assert status.startswith("❌")
        assert session.template is None


class TestUpdateSettings:
    def test_applies_all_controls(self, session):
        current, history, status, session = update_settings(
            "绿地草坪", "年轻情侣", "16:9", "光线偏暖", 5, session
        )
        assert session.config.family_composition.value == "年轻情侣"
        assert session.config.aspect_ratio.value == "16:9"
        assert session.config.freeform_note == "光线偏暖"
        assert session.batch_size == 5
        assert current == [] and history == []

    def test_none_note_becomes_empty(self, session):
        *_, session = update_settings("绿地草坪", "年轻情侣", "1:1", None, 3, session)
        assert session.config.freeform_note == ""

    def test_invalid_value_reported(self, session):
        _, _, status, session = update_settings("月球表面", "年轻情侣", "1:1", "", 3, session)
        assert status.startswith("❌")
        assert session.config.scene.value == "绿地草坪"


class TestRunGeneration:
    def test_success(self, session, fake_service):
        current, history, status, session = _run(run_generation(False, fake_service, session))
        assert len(current) == 3
        assert history == []
        assert all(isinstance(image, Image.Image) for image, _ in current)
        assert current[0][1].startswith("绿地草坪 - ")
        assert status.startswith("✅")

    def test_reports_progress(self, session, fake_service):
        progress = MagicMock()
        _run(run_generation(False, fake_service, session, progress))
        fractions = [call.args[0] for call in progress.call_args_list]
        assert fractions[0] == 0
        assert fractions[-1] == 1.0
        assert len(fractions) == 4

    def test_no_photos_message(self, fake_service):
        current, _, status, session = _run(run_generation(False, fake_service, None))
        assert "请至少上传一张产品照片" in status
        assert current == []
        assert fake_service.call_count == 0

    def test_service_failure_message(self, session, service_factory):
        service = service_factory(fail_on=[2], error=SafetyRejectionError())
        current, _, status, session = _run(run_generation(False, service, session))
        assert "安全过滤策略" in status
        assert current == []
        assert session.error is not None

    def test_refine(self, session, fake_service):
        _run(run_generation(False, fake_service, session))
        current, history, status, session = _run(run_generation(True, fake_service, session))
        assert len(current) == 3
        assert len(history) == 1
        assert "精修完成" in status


class TestPromote:
    @pytest.fixture
    def generated(self, session, fake_service) -> StudioSession:
        _run(session.run_generation(fake_service))
        _run(session.run_generation(fake_service))
        return session

    def test_promote_history_item(self, generated):
        target = generated.history_results()[1]
        current, history, session = promote_history(SimpleNamespace(index=1), generated)
        assert session.history.primary.id == target.id
        assert len(current) == 3 and len(history) == 3

    def test_promote_current_item(self, generated):
        target = generated.current_results()[2]
        _, _, session = promote_current(SimpleNamespace(index=2), generated)
        assert session.history.primary.id == target.id

    def test_out_of_range_index_is_ignored(self, generated):
        before = generated.history.artifacts
        _, _, session = promote_history(SimpleNamespace(index=99), generated)
        assert session.history.artifacts == before


class TestDownload:
    def test_nothing_to_download(self, session):
        path, status, _ = download_primary(session)
        assert path is None

    def test_exports_primary(self, session, fake_service, monkeypatch, temp_dir: Path):
        monkeypatch.setattr(config, "exports_dir", temp_dir)
        _run(session.run_generation(fake_service))
        path, status, session = download_primary(session)
        assert Path(path).name == f"qianfan-life-{session.history.primary.id}.png"
        assert Path(path).read_bytes().startswith(b"\x89PNG")

    def test_exports_clicked_current_item(self, session, fake_service, monkeypatch, temp_dir: Path):
        monkeypatch.setattr(config, "exports_dir", temp_dir)
        _run(session.run_generation(fake_service))
        target = session.current_results()[2]
        order = session.history.artifacts

        path, status = download_current(SimpleNamespace(index=2), session)
        assert Path(path).name == f"qianfan-life-{target.id}.png"
        assert target.id in status
        assert session.history.artifacts == order

    def test_clicked_index_out_of_range(self, session):
        assert download_current(SimpleNamespace(index=5), session) == (None, NOTHING_TO_DOWNLOAD)

    def test_undecodable_artifact_reported(self, session, service_factory, monkeypatch, temp_dir: Path):
        monkeypatch.setattr(config, "exports_dir", temp_dir)
        broken = service_factory(image_url="data:image/jpeg;base64,bm90IGEgcGljdHVyZQ==")
        _run(session.run_generation(broken))
        path, status, _ = download_primary(session)
        assert path is None
        assert status.startswith("❌")


def test_render_results_empty():
    assert render_results(StudioSession()) == ([], [])
