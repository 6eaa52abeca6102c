"""Lifestyle Studio - FastAPI Application.

This module is the main entry point for the web application.  It defines the
FastAPI ``app`` instance, the JSON API routes over one
:class:`~lifestyle_studio.core.session.StudioSession`, and the ``main()`` CLI
function that mounts the Gradio UI and launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~lifestyle_studio.core.config.config`
  (``STUDIO_*`` environment variables / ``.env``).
- **Image generation** goes through the
  :class:`~lifestyle_studio.core.image_service.GeminiImageService` created at
  startup.  A missing API key aborts startup.
- **State** is a single in-memory ``StudioSession`` on ``app.state``; nothing
  is persisted across restarts.
- **The web UI** (Gradio) is mounted under ``config.ui_path`` by ``main()``;
  ``GET /`` redirects there.

Endpoints
---------
========  ================================  ================================
Method    Path                              Purpose
========  ================================  ================================
GET       ``/``                             Redirect to the web UI
GET       ``/api/options``                  Scenes, compositions, ratios
GET       ``/api/config``                   Current settings
PATCH     ``/api/config``                   Reassign settings
GET       ``/api/photos``                   Selected photos and template
POST      ``/api/photos``                   Upload product photos
DELETE    ``/api/photos``                   Remove all product photos
DELETE    ``/api/photos/{id}``              Remove one product photo
PUT       ``/api/template``                 Upload / replace the template
DELETE    ``/api/template``                 Clear the template
POST      ``/api/generate``                 Run a batch (or a refinement)
GET       ``/api/progress``                 Progress of the batch in flight
GET       ``/api/results``                  Current results and history
POST      ``/api/results/{id}/promote``     Move an artifact to the front
GET       ``/api/results/{id}/download``    Download an artifact as PNG
========  ================================  ================================

Usage
-----
CLI (installed entry point)::

    lifestyle-studio

Direct invocation::

    python -m lifestyle_studio.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response

from lifestyle_studio import __version__
from lifestyle_studio.api.models import ConfigUpdateRequest, GenerateRequest
from lifestyle_studio.core.config import config
from lifestyle_studio.core.errors import (
    GenerationError,
    GenerationInProgressError,
    ImageEncodingError,
    SafetyRejectionError,
    StudioError,
    ValidationError,
)
from lifestyle_studio.core.history import artifact_png_bytes, export_filename
from lifestyle_studio.core.image_service import GeminiImageService, ImageService
from lifestyle_studio.core.intake import encode_upload
from lifestyle_studio.core.options import (
    BATCH_SIZES,
    FamilyComposition,
    OutputAspectRatio,
    SceneType,
)
from lifestyle_studio.core.session import StudioSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Error -> HTTP status mapping.  First match wins, so subclasses come first.
# ---------------------------------------------------------------------------
_ERROR_STATUS: tuple[tuple[type[StudioError], int], ...] = (
    (GenerationInProgressError, 409),
    (SafetyRejectionError, 422),
    (GenerationError, 502),
    (ImageEncodingError, 400),
    (ValidationError, 400),
)


def _status_for(exc: StudioError) -> int:
    return next((status for cls, status in _ERROR_STATUS if isinstance(exc, cls)), 500)


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown.

    On startup:
        Creates the image service (failing fast with
        :class:`~lifestyle_studio.core.errors.ConfigurationError` when the API
        key is missing) and a fresh :class:`StudioSession`.

    On shutdown:
        Drops the session; generated artifacts are not persisted.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    app.state.image_service = GeminiImageService.from_config(config)
    app.state.session = StudioSession(batch_size=config.default_batch_size)
    logger.info("Studio session created.")

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    logger.info(f"Discarding session on shutdown: {app.state.session!r}")
    app.state.session = None


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Lifestyle Studio",
    description="AI lifestyle scene generation for marketplace A+ detail pages.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so a separately served frontend can call the API
# during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StudioError)
async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    """Render user-facing studio errors as JSON."""
    status = _status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(
        status_code=status,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


def _session() -> StudioSession:
    return app.state.session


def _service() -> ImageService:
    return app.state.image_service


def _results_payload(session: StudioSession) -> dict:
    return {
        "batch_size": session.batch_size,
        "current": [a.to_dict() for a in session.current_results()],
        "history": [a.to_dict() for a in session.history_results()],
    }


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/")
async def index() -> RedirectResponse:
    """Redirect to the mounted web UI."""
    return RedirectResponse(url=config.ui_path)


@app.get("/api/options")
async def get_options() -> dict:
    """Return every selectable option for the frontend.

    Returns:
        Dictionary with ``version``, ``scenes``, ``family_compositions``,
        ``aspect_ratios`` and ``batch_sizes``.
    """
    return {
        "version": __version__,
        "scenes": [scene.value for scene in SceneType],
        "family_compositions": [family.value for family in FamilyComposition],
        "aspect_ratios": [ratio.value for ratio in OutputAspectRatio],
        "batch_sizes": list(BATCH_SIZES),
    }


@app.get("/api/config")
async def get_config() -> dict:
    """Return the live generation settings and batch size."""
    session = _session()
    return {
        "config": session.config.model_dump(mode="json"),
        "batch_size": session.batch_size,
    }


@app.patch("/api/config")
async def update_config(req: ConfigUpdateRequest) -> dict:
    """Reassign any subset of the settings.

    Changes apply to the next batch; a batch already in flight keeps the
    settings it was submitted with.

    Raises:
        ValidationError: (400) for a batch size that is not offered.
    """
    session = _session()
    if req.batch_size is not None and req.batch_size not in BATCH_SIZES:
        raise ValidationError(f"生成数量必须是 {', '.join(map(str, BATCH_SIZES))} 之一。")

    changes = req.config_changes()
    if changes:
        session.update_config(**changes)
    if req.batch_size is not None:
        session.set_batch_size(req.batch_size)
    return await get_config()


@app.get("/api/photos")
async def list_photos() -> dict:
    """Return the selected product photos and the template."""
    session = _session()
    return {
        "photos": [photo.to_dict() for photo in session.product_photos],
        "template": session.template.to_dict() if session.template else None,
    }


@app.post("/api/photos")
async def upload_photos(files: list[UploadFile] = File(...)) -> dict:
    """Add product photos, in upload order.

    All files are encoded before any is added, so a bad file leaves the
    selection unchanged.

    Raises:
        ImageEncodingError: (400) if any file is not a readable image.
    """
    session = _session()
    encoded = [(await encode_upload(upload), upload.filename or "") for upload in files]
    added = [session.add_product_photo(image, filename) for image, filename in encoded]
    return {"added": [photo.to_dict() for photo in added], **(await list_photos())}


@app.delete("/api/photos")
async def clear_photos() -> dict:
    """Remove every product photo."""
    _session().clear_product_photos()
    return await list_photos()


@app.delete("/api/photos/{photo_id}")
async def delete_photo(photo_id: str) -> dict:
    """Remove one product photo.

    Raises:
        HTTPException: 404 if the photo is not selected.
    """
    if not _session().remove_product_photo(photo_id):
        raise HTTPException(status_code=404, detail="Photo not found")
    return await list_photos()


@app.put("/api/template")
async def upload_template(file: UploadFile = File(...)) -> dict:
    """Set the A+ template, replacing any previous one."""
    image = await encode_upload(file)
    template = _session().set_template(image, file.filename or "")
    return {"template": template.to_dict()}


@app.delete("/api/template")
async def clear_template() -> dict:
    """Clear the A+ template."""
    _session().clear_template()
    return {"template": None}


@app.post("/api/generate")
async def generate(req: GenerateRequest) -> dict:
    """Run one batch and merge it into the results.

    This endpoint:

    1. Rejects the request if no product photo is selected (400) or a batch
       is already in flight (409).
    2. Issues one service call per image, all at once (one call when
       refining the primary artifact).
    3. Records the batch only if every call succeeded.

    Returns:
        Dictionary with ``success``, ``images`` (the new artifacts in
        submission order) and the refreshed ``results``.
    """
    session = _session()
    artifacts = await session.run_generation(
        _service(),
        refine=req.refine,
        max_concurrency=config.max_concurrent_requests,
    )
    return {
        "success": True,
        "images": [a.to_dict() for a in artifacts],
        "results": _results_payload(session),
    }


@app.get("/api/progress")
async def get_progress() -> dict:
    """Return the progress of the batch in flight, if any."""
    session = _session()
    progress = session.progress
    return {
        "generating": progress is not None,
        "progress": progress.to_dict() if progress else None,
        "error": session.error,
    }


@app.get("/api/results")
async def get_results() -> dict:
    """Return the current results and the history.

    The split uses the batch size selected *now*, not the size of the batch
    that produced each artifact.
    """
    return _results_payload(_session())


@app.post("/api/results/{artifact_id}/promote")
async def promote_result(artifact_id: str) -> dict:
    """Move an artifact to the front of the results.

    Raises:
        HTTPException: 404 if the artifact is unknown (results unchanged).
    """
    session = _session()
    if not session.promote(artifact_id):
        raise HTTPException(status_code=404, detail="Image not found")
    return _results_payload(session)


@app.get("/api/results/{artifact_id}/download")
async def download_result(artifact_id: str) -> Response:
    """Download an artifact as ``<prefix>-<id>.png``.

    Raises:
        HTTPException: 404 if the artifact is unknown.
        ImageEncodingError: If the artifact cannot be decoded for re-encoding.
    """
    artifact = _session().history.get(artifact_id)
    if artifact is None:
        raise HTTPException(status_code=404, detail="Image not found")

    filename = export_filename(artifact, config.download_prefix)
    return Response(
        content=artifact_png_bytes(artifact),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Mount the Gradio UI and launch the uvicorn ASGI server.

    Reads host and port from :data:`~lifestyle_studio.core.config.config`
    (``STUDIO_SERVER_HOST`` / ``STUDIO_SERVER_PORT``).  Registered as the
    ``lifestyle-studio`` console script in ``pyproject.toml``.
    """
    import gradio as gr
    import uvicorn

    from lifestyle_studio.ui.app import create_ui

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"Starting Lifestyle Studio {__version__} (model={config.image_model})")

    blocks = create_ui(lambda: app.state.image_service)
    gr.mount_gradio_app(app, blocks, path=config.ui_path)

    uvicorn.run(app, host=config.server_host, port=config.server_port)


if __name__ == "__main__":
    main()
