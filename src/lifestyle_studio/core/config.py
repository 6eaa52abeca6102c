"""Configuration management for Lifestyle Studio.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the STUDIO_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (STUDIO_* prefix)
2. .env file in the project root
3. Default values defined in StudioConfig

Example .env file:
    STUDIO_API_KEY=your-gemini-key
    STUDIO_IMAGE_MODEL=gemini-2.5-flash-image
    STUDIO_DEFAULT_BATCH_SIZE=3
    STUDIO_EXPORTS_DIR=exports

The API key is the only secret.  For compatibility with existing deployments it
is also read from ``GEMINI_API_KEY`` or plain ``API_KEY``.

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The API key is *not* required at import time so that tests and tooling can
import the package without credentials; the entry points call
:meth:`StudioConfig.require_api_key` during startup, which turns a missing key
into a fatal :class:`~lifestyle_studio.core.errors.ConfigurationError`.

Usage Example
-------------
    from lifestyle_studio.core.config import config

    print(config.image_model)
    print(config.exports_dir)
"""

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lifestyle_studio.core.errors import ConfigurationError
from lifestyle_studio.core.options import BATCH_SIZES, DEFAULT_BATCH_SIZE


class StudioConfig(BaseSettings):
    """Main configuration for Lifestyle Studio.

    Attributes
    ----------
    Service Settings:
        api_key : SecretStr | None
            Credential for the Gemini API (required at startup)
        image_model : str
            Gemini model used for image generation
        max_concurrent_requests : int | None
            Upper bound on simultaneous service calls within one batch.
            ``None`` keeps the unbounded fan-out of the browser product.

    Studio Settings:
        default_batch_size : int
            Batch size selected when a new session starts (1, 3, 5 or 8)
        download_prefix : str
            Prefix of exported file names (``<prefix>-<id>.png``)
        exports_dir : Path
            Directory where the web UI writes downloaded artifacts

    Server Settings:
        server_host : str
            Bind address for uvicorn / Gradio
        server_port : int
            Port (1024-65535)
        ui_path : str
            Mount path of the Gradio UI inside the FastAPI app
        log_level : str
            Root logging level for the entry points
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STUDIO_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Service settings
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("STUDIO_API_KEY", "GEMINI_API_KEY", "API_KEY"),
        description="Gemini API key",
    )
    image_model: str = Field(
        default="gemini-2.5-flash-image",
        description="Gemini model used for image generation",
    )
    max_concurrent_requests: int | None = Field(
        default=None,
        ge=1,
        description="Cap on simultaneous service calls per batch (None = unbounded)",
    )

    # Studio settings
    default_batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        description="Initial batch size (one of 1, 3, 5, 8)",
    )
    download_prefix: str = Field(
        default="qianfan-life",
        description="Prefix for exported artifact file names",
    )
    exports_dir: Path = Field(
        default=Path("exports"),
        description="Directory for artifacts downloaded from the web UI",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    ui_path: str = Field(
        default="/studio",
        description="Path the Gradio UI is mounted under",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level for the entry points",
    )

    @field_validator("default_batch_size")
    @classmethod
    def _check_batch_size(cls, value: int) -> int:
        if value not in BATCH_SIZES:
            raise ValueError(f"default_batch_size must be one of {BATCH_SIZES}, got {value}")
        return value

    def __init__(self, **kwargs):
        """Initialize configuration and create the exports directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.exports_dir.mkdir(parents=True, exist_ok=True)

    def require_api_key(self) -> str:
        """Return the API key, failing loudly when it is not configured.

        Returns:
            The plain-text API key

        Raises:
            ConfigurationError: If no key was found in the environment or .env
        """
        if self.api_key is None or not self.api_key.get_secret_value().strip():
            raise ConfigurationError(
                "Missing API key: set STUDIO_API_KEY (or GEMINI_API_KEY) in the environment"
            )
        return self.api_key.get_secret_value()


# Global configuration instance
# Loaded from environment variables (STUDIO_* prefix) and the .env file.
config = StudioConfig()
