"""Generation request construction for Lifestyle Studio.

Turns the user's selections into the request sent to the image service: a
fixed system instruction, an ordered list of image parts, and a final
instruction text.  Everything here is pure; identical inputs always produce a
byte-identical instruction.

Instruction Modes
-----------------
**Fresh composition** (no base image) - a numbered creative brief::

    【指令：创作 Amazon A+ 生活场景图】
    1. scene   2. people   3. aspect ratio
    4. art direction       5. product integration
    [template style-matching clause]
    6. extra requirements (free-form note or 无)

**Refinement** (base image present) - "modify and refine" phrasing that keeps
the product's structure, colour and details, then lists scene, character
setting, refinement note, aspect ratio and the optional template clause.

Part Order
----------
::

    [product image 1..n] [base image?] [template image?] [instruction text]

Image payloads have any data-URI prefix stripped.  The base image is always
sent as ``image/png``; generated artifacts are PNG data URIs.

Usage
-----
::

    request = build_request(images, config, template_image=template)
    request.instruction   # final text part
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from lifestyle_studio.core.intake import EncodedImage
from lifestyle_studio.core.options import GenerationConfig, OutputAspectRatio

# ---------------------------------------------------------------------------
# Fixed instruction fragments.
# These define the studio's voice and are not user-configurable.  The user
# steers the result only through scene, composition, ratio and the note.
# ---------------------------------------------------------------------------

SYSTEM_INSTRUCTION = (
    "你是一名世界级的亚马逊商业摄影师和品牌视觉专家。\n"
    "你的任务是将产品完美融入生活场景，特别是为亚马逊 A+ 详情页创作高质量的素材。\n"
    "你非常擅长捕捉不同品牌模版的视觉语言（如构图平衡、留白区域、色调一致性）。"
)

NO_PEOPLE_CLAUSE = "场景中不包含任何人物。重点通过环境中的软装、光影和深度感来展示产品的品质感。"

PEOPLE_CLAUSE_TEMPLATE = (
    "- 人物元素：{family}。他们应自然地出现在场景中，"
    "穿着和气质需符合欧美中产家庭的审美，风格休闲且高级。"
)

TEMPLATE_CLAUSE = (
    "【核心要求：参考 A+ 模版风格】请观察提供的 A+ 模版参考图，"
    "确保生成的图片在构图、背景留白位置、光影对比度以及整体色调上与模版保持高度统一，"
    "使其能够完美嵌入该详情页模块。"
)

REMOVE_PEOPLE_SETTING = "移除所有人物"

EMPTY_NOTE_MARKER = "无"

BASE_IMAGE_MEDIA_TYPE = "image/png"


@dataclass(frozen=True)
class ImagePart:
    """Inline image data sent to the service.

    Attributes:
        data: Base64 payload without a data-URI prefix
        media_type: Declared MIME type of the payload
    """

    data: str
    media_type: str


@dataclass(frozen=True)
class TextPart:
    """Text sent to the service."""

    text: str


RequestPart = ImagePart | TextPart


@dataclass(frozen=True)
class GenerationRequest:
    """A complete, service-agnostic generation request.

    Attributes:
        system_instruction: Persona instruction sent on every call
        parts: Image parts followed by the instruction text
        aspect_ratio: Requested output aspect ratio
    """

    system_instruction: str
    parts: tuple[RequestPart, ...]
    aspect_ratio: OutputAspectRatio

    @property
    def instruction(self) -> str:
        """The instruction text (always the final part)."""
        return self.parts[-1].text

    @property
    def image_parts(self) -> tuple[ImagePart, ...]:
        """All image parts, in request order."""
        return tuple(part for part in self.parts if isinstance(part, ImagePart))


def _note_text(config: GenerationConfig) -> str:
    return config.freeform_note or EMPTY_NOTE_MARKER


def _fresh_instruction(config: GenerationConfig, template_clause: str) -> str:
    if config.shows_people:
        people = PEOPLE_CLAUSE_TEMPLATE.format(family=config.family_composition.value)
    else:
        people = NO_PEOPLE_CLAUSE

    return (
        "【指令：创作 Amazon A+ 生活场景图】\n"
        "请结合上传的产品图（白底图）和（可选的）模版参考，生成一张具有强烈代入感的实拍风格照片。\n"
        "\n"
        f"1. 场景设定：{config.scene.value}（地道的欧美风格环境）。\n"
        f"2. 人物要求：{people}\n"
        f"3. 比例要求：{config.aspect_ratio.value}。\n"
        "4. 艺术风格：高端商业广告级别，强调自然光影（如林间撒落的阳光或室内温馨的暖色光），"
        "画面锐利，细节丰富。\n"
        "5. 产品融合：帐篷/凉亭必须作为画面的主体之一，结构必须准确，阴影和反光需与环境完美匹配。\n"
        f"{template_clause}\n"
        f"6. 额外要求：{_note_text(config)}\n"
        "\n"
        "注意：严禁改变产品的核心外观特征。请直接输出生成的图像。"
    )


def _refinement_instruction(config: GenerationConfig, template_clause: str) -> str:
    # Without people the refinement keeps the staging emphasis of a fresh brief.
    if config.shows_people:
        people = config.family_composition.value
    else:
        people = f"{REMOVE_PEOPLE_SETTING}。{NO_PEOPLE_CLAUSE}"

    return (
        "【指令：修改并精修图像】\n"
        "基于提供的这张已生成的图像进行微调。\n"
        "保持图中产品（帐篷/凉亭）的核心结构、颜色和细节不变。\n"
        f"环境场景：{config.scene.value}\n"
        f"人物设定：{people}\n"
        f"微调建议：{_note_text(config)}\n"
        f"输出比例：{config.aspect_ratio.value}\n"
        f"{template_clause}\n"
        "请直接生成优化后的最终结果图。"
    )


def build_instruction(
    config: GenerationConfig,
    *,
    refining: bool = False,
    has_template: bool = False,
) -> str:
    """Compose the instruction text for one generation call.

    Args:
        config: Generation settings (scene, composition, ratio, note)
        refining: ``True`` to phrase the request as a refinement of a base image
        has_template: ``True`` to append the A+ template style-matching clause

    Returns:
        The instruction text.  The note is inserted verbatim and is not
        sanitised.
    """
    template_clause = TEMPLATE_CLAUSE if has_template else ""
    if refining:
        return _refinement_instruction(config, template_clause)
    return _fresh_instruction(config, template_clause)


def build_request(
    images: Sequence[EncodedImage],
    config: GenerationConfig,
    base_image: EncodedImage | None = None,
    template_image: EncodedImage | None = None,
) -> GenerationRequest:
    """Assemble the full request for one generation call.

    Args:
        images: Product photos, in selection order
        config: Generation settings snapshot
        base_image: Previously generated artifact to refine, if any
        template_image: A+ layout template to match, if any

    Returns:
        GenerationRequest with parts ordered as product images, base image,
        template image, instruction text.
    """
    parts: list[RequestPart] = [
        ImagePart(data=image.payload, media_type=image.media_type) for image in images
    ]

    if base_image is not None:
        parts.append(ImagePart(data=base_image.payload, media_type=BASE_IMAGE_MEDIA_TYPE))

    if template_image is not None:
        parts.append(ImagePart(data=template_image.payload, media_type=template_image.media_type))

    instruction = build_instruction(
        config,
        refining=base_image is not None,
        has_template=template_image is not None,
    )
    parts.append(TextPart(text=instruction))

    return GenerationRequest(
        system_instruction=SYSTEM_INSTRUCTION,
        parts=tuple(parts),
        aspect_ratio=config.aspect_ratio,
    )


def summarize(config: GenerationConfig) -> str:
    """Short label stored on each artifact, e.g. ``绿地草坪 - 年轻情侣``."""
    return f"{config.scene.value} - {config.family_composition.value}"
