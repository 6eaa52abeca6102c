"""UI event handlers for the studio page.

Every handler takes the per-tab session as its last input.  Handlers that
change the session return it as their last output; read-only handlers such
as :func:`download_current` return no session.  User-facing failures are
rendered into the status markdown instead of raising, so the page keeps
working after an error.
"""

import logging

import gradio as gr
from PIL import Image

from lifestyle_studio.core.config import config
from lifestyle_studio.core.errors import ImageEncodingError, StudioError
from lifestyle_studio.core.history import GeneratedArtifact, artifact_to_pil, save_artifact
from lifestyle_studio.core.image_service import ImageService
from lifestyle_studio.core.orchestrator import BatchProgress
from lifestyle_studio.core.session import StudioSession

from .state import initialize_session

logger = logging.getLogger(__name__)

GalleryItems = list[tuple[Image.Image, str]]

IDLE_STATUS = "*上传产品图并选择场景，我们将为您打造世界级的 A+ 页面素材*"
NOTHING_TO_DOWNLOAD = "*等待生成您的视觉资产*"


def _error_status(message: str) -> str:
    return f"❌ **{message}**"


def _caption(artifact: GeneratedArtifact) -> str:
    return f"{artifact.prompt_summary} · {artifact.aspect_ratio.value}"


def _gallery(artifacts: list[GeneratedArtifact]) -> GalleryItems:
    return [(artifact_to_pil(artifact), _caption(artifact)) for artifact in artifacts]


def render_results(session: StudioSession) -> tuple[GalleryItems, GalleryItems]:
    """Build the current-results and history gallery values.

    Args:
        session: Studio session

    Returns:
        Tuple of (current_items, history_items)
    """
    return _gallery(session.current_results()), _gallery(session.history_results())


async def sync_product_photos(
    paths: list[str] | None, state: StudioSession | None
) -> tuple[str, StudioSession]:
    """Replace the product photos with the files currently in the picker.

    Unreadable files are skipped and reported; the readable ones are kept.

    Args:
        paths: File paths from the multi-file picker (None when emptied)
        state: Studio session

    Returns:
        Tuple of (status_markdown, updated_state)
    """
    session = initialize_session(state)
    session.clear_product_photos()

    failures = []
    for path in paths or []:
        try:
            await session.add_product_file(path)
        except ImageEncodingError as e:
            logger.warning(f"Skipping unreadable product photo {path}: {e.message}")
            failures.append(e.message)

    if failures:
        return _error_status("\n\n".join(failures)), session

    count = len(session.product_photos)
    return (f"已选择 {count} 张产品照片" if count else IDLE_STATUS), session


async def set_template_image(
    path: str | None, state: StudioSession | None
) -> tuple[str, StudioSession]:
    """Set or clear the A+ template.

    Args:
        path: Template file path, or None when the image was removed
        state: Studio session

    Returns:
        Tuple of (status_markdown, updated_state)
    """
    session = initialize_session(state)
    if not path:
        session.clear_template()
        return "*未使用 A+ 模版*", session

    try:
        await session.set_template_file(path)
    except ImageEncodingError as e:
        session.clear_template()
        return _error_status(e.message), session
    return "✅ 已关联 A+ 模版", session


def update_settings(
    scene: str,
    family_composition: str,
    aspect_ratio: str,
    freeform_note: str,
    batch_size: int,
    state: StudioSession | None,
) -> tuple[GalleryItems, GalleryItems, str, StudioSession]:
    """Apply the current control values to the session.

    The galleries are re-rendered because the batch size decides where the
    current results end and the history begins.

    Returns:
        Tuple of (current_items, history_items, status_markdown, updated_state)
    """
    session = initialize_session(state)
    try:
        session.update_config(
            scene=scene,
            family_composition=family_composition,
            aspect_ratio=aspect_ratio,
            freeform_note=freeform_note or "",
        )
        session.set_batch_size(int(batch_size))
        status = f"开始生成 {session.batch_size} 张图"
    except StudioError as e:
        status = _error_status(e.message)

    current, history = render_results(session)
    return current, history, status, session


async def run_generation(
    refine: bool,
    service: ImageService,
    state: StudioSession | None,
    progress: gr.Progress | None = None,
) -> tuple[GalleryItems, GalleryItems, str, StudioSession]:
    """Generate a batch (or refine the primary artifact) from the UI.

    Args:
        refine: Refine the primary artifact instead of composing anew
        service: Image service to call
        state: Studio session
        progress: Gradio progress tracker, if any

    Returns:
        Tuple of (current_items, history_items, status_markdown, updated_state)
    """
    session = initialize_session(state)

    def report(batch: BatchProgress) -> None:
        if progress is not None:
            progress(batch.fraction, desc=f"制作中 ({batch.completed}/{batch.total})")

    if progress is not None:
        progress(0, desc="正在渲染视觉场景")

    try:
        artifacts = await session.run_generation(
            service,
            refine=refine,
            on_progress=report,
            max_concurrency=config.max_concurrent_requests,
        )
        status = (
            f"✅ **{'精修完成' if refine else '生成完成'}**\n\n"
            f"**场景：** {artifacts[0].prompt_summary}\n"
            f"**数量：** {len(artifacts)}"
        )
    except StudioError as e:
        logger.warning(f"Generation failed: {e.message}")
        status = _error_status(e.message)
    except Exception as e:
        logger.error(f"Unexpected error during generation: {e}", exc_info=True)
        status = _error_status(f"生成失败，请重试。\n\n`{e}`")

    current, history = render_results(session)
    return current, history, status, session


def _promote(
    index: int, artifacts: list[GeneratedArtifact], session: StudioSession
) -> tuple[GalleryItems, GalleryItems, StudioSession]:
    if 0 <= index < len(artifacts):
        session.promote(artifacts[index].id)
    current, history = render_results(session)
    return current, history, session


def promote_current(
    evt: gr.SelectData, state: StudioSession | None
) -> tuple[GalleryItems, GalleryItems, StudioSession]:
    """Move the clicked current result to the primary position."""
    session = initialize_session(state)
    return _promote(evt.index, session.current_results(), session)


def promote_history(
    evt: gr.SelectData, state: StudioSession | None
) -> tuple[GalleryItems, GalleryItems, StudioSession]:
    """Move the clicked history item back to the primary position."""
    session = initialize_session(state)
    return _promote(evt.index, session.history_results(), session)


def _export(artifact: GeneratedArtifact) -> tuple[str | None, str]:
    try:
        path = save_artifact(artifact, config.exports_dir, config.download_prefix)
    except StudioError as e:
        return None, _error_status(e.message)
    return str(path), f"已导出 `{path.name}`"


def download_primary(state: StudioSession | None) -> tuple[str | None, str, StudioSession]:
    """Export the primary artifact as a PNG file for download.

    Returns:
        Tuple of (file_path_or_None, status_markdown, updated_state)
    """
    session = initialize_session(state)
    primary = session.history.primary
    if primary is None:
        return None, NOTHING_TO_DOWNLOAD, session
    return (*_export(primary), session)


def download_current(evt: gr.SelectData, state: StudioSession | None) -> tuple[str | None, str]:
    """Export the clicked current result, whatever its position.

    Returns:
        Tuple of (file_path_or_None, status_markdown)
    """
    artifacts = initialize_session(state).current_results()
    if not 0 <= evt.index < len(artifacts):
        return None, NOTHING_TO_DOWNLOAD
    return _export(artifacts[evt.index])
