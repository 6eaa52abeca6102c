"""Error taxonomy for Lifestyle Studio.

Every error a user can run into while preparing or running a generation is a
:class:`StudioError`.  The message of a studio error is written for the person
in front of the UI (in the product's language) and is displayed as-is by both
the Gradio handlers and the FastAPI exception handler.

Hierarchy
---------
StudioError
    ValidationError            - bad input, no remote call made
    ImageEncodingError         - a selected file could not be read as an image
    GenerationInProgressError  - a batch is already running for this session
    GenerationError            - transport or unknown service failure
        SafetyRejectionError   - the service refused on safety grounds
        ContentRefusalError    - the service answered with text, not an image
        NoImageDataError       - the response carried no image data

ConfigurationError is not a StudioError: it is fatal at startup
and never shown as an inline message.
"""

# Default messages shown to the user.
NO_PRODUCT_IMAGES_MESSAGE = "请至少上传一张产品照片。"
GENERATION_FAILED_MESSAGE = "生成失败，请重试。"
SAFETY_REJECTED_MESSAGE = "AI 拒绝了生成请求，可能触及了安全过滤策略。请尝试更换场景或简化描述。"
SAFETY_BLOCKED_MESSAGE = "请求因内容安全原因被拦截，建议避免敏感词汇或过于复杂的场景。"
NO_IMAGE_DATA_MESSAGE = "未检测到生成的图像数据，请检查输入或重试。"
GENERATION_IN_PROGRESS_MESSAGE = "正在生成中，请等待当前批次完成。"


class StudioError(Exception):
    """Base class for user-facing studio errors.

    The message is intended to be displayed directly to the user.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StudioError):
    """User input failed validation; no remote call was attempted."""

    pass


class ImageEncodingError(StudioError):
    """A selected file could not be read or is not a supported image."""

    pass


class GenerationInProgressError(StudioError):
    """A batch is already in flight for this session."""

    def __init__(self, message: str = GENERATION_IN_PROGRESS_MESSAGE):
        super().__init__(message)


class GenerationError(StudioError):
    """The image service failed.

    Transport errors carry the underlying message; an empty message falls back
    to the generic retry hint.
    """

    def __init__(self, message: str | None = None):
        super().__init__(message or GENERATION_FAILED_MESSAGE)


class SafetyRejectionError(GenerationError):
    """The service declined the request under its safety policy."""

    def __init__(self, message: str = SAFETY_REJECTED_MESSAGE):
        super().__init__(message)


class ContentRefusalError(GenerationError):
    """The service returned explanatory text instead of an image."""

    EXCERPT_LENGTH = 100

    def __init__(self, feedback: str):
        self.feedback = feedback
        super().__init__(f"AI 未能生成图片。反馈：{feedback[: self.EXCERPT_LENGTH]}...")


class NoImageDataError(GenerationError):
    """The response had candidates but none of them carried image data."""

    def __init__(self, message: str = NO_IMAGE_DATA_MESSAGE):
        super().__init__(message)


class ConfigurationError(RuntimeError):
    """Fatal startup misconfiguration (for example a missing API key)."""

    pass
