"""Pydantic request models for the Lifestyle Studio API.

FastAPI uses these for request validation and OpenAPI documentation.
Responses are plain dictionaries built from the core dataclasses.

Models
------
ConfigUpdateRequest
    Payload for ``PATCH /api/config``; every field is optional so any subset
    of the settings can be reassigned independently.
GenerateRequest
    Payload for ``POST /api/generate``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from lifestyle_studio.core.options import FamilyComposition, OutputAspectRatio, SceneType


class ConfigUpdateRequest(BaseModel):
    """Request body for the ``PATCH /api/config`` endpoint.

    Attributes:
        scene: New scene, or ``None`` to keep the current one.
        family_composition: New character composition, or ``None``.
        aspect_ratio: New output aspect ratio, or ``None``.
        freeform_note: New free-form note (empty string clears it), or
            ``None`` to keep the current note.
        batch_size: New batch size (1, 3, 5 or 8), or ``None``.
    """

    scene: SceneType | None = Field(
        default=None,
        description="Scene label, e.g. '绿地草坪'.",
    )
    family_composition: FamilyComposition | None = Field(
        default=None,
        description="Character composition label, e.g. '年轻情侣'.",
    )
    aspect_ratio: OutputAspectRatio | None = Field(
        default=None,
        description="Output aspect ratio, e.g. '16:9'.",
    )
    freeform_note: str | None = Field(
        default=None,
        description="Free-form note inserted verbatim into the instruction.",
    )
    batch_size: int | None = Field(
        default=None,
        description="Images per fresh batch (1, 3, 5 or 8).",
    )

    def config_changes(self) -> dict:
        """The generation-setting fields that were actually provided."""
        return self.model_dump(exclude_none=True, exclude={"batch_size"})


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        refine: ``True`` to refine the current primary artifact (always one
            image); ``False`` to compose a fresh batch of the selected size.
    """

    refine: bool = Field(
        default=False,
        description="Refine the primary artifact instead of composing a new batch.",
    )
