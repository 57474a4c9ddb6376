"""Configuration management for Loremaster.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the LOREMASTER_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (LOREMASTER_* prefix)
2. .env file in the project root
3. Default values defined in LoremasterConfig

The provider API key is the one exception to the prefix rule: it is read from
``LOREMASTER_OPENAI_API_KEY`` or, failing that, the conventional
``OPENAI_API_KEY`` used by the OpenAI SDK.

Example .env file:
    OPENAI_API_KEY=sk-...
    LOREMASTER_TEXT_MODEL=gpt-4-turbo
    LOREMASTER_IMAGE_POLICY=per_section
    LOREMASTER_MAX_CONCURRENCY=4
    LOREMASTER_OUTPUTS_DIR=outputs

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The API layer reads it once at startup and hands it to the provider and the
orchestrator explicitly; nothing below the API layer imports it.

Usage Example
-------------
    from loremaster.core.config import config

    print(config.text_model)
    print(config.outputs_dir)

Directory Management
--------------------
The configuration automatically creates ``outputs_dir`` on initialization.
Per-world folders below it are created by the pipeline on first write.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoremasterConfig(BaseSettings):
    """Main configuration for Loremaster.

    Attributes
    ----------
    Provider Settings:
        openai_api_key : SecretStr | None
            API key for the OpenAI-compatible provider
        openai_base_url : str | None
            Override for the provider endpoint (None = SDK default)
        text_model : str
            Chat completion model used for world sections and names
        image_model : str
            Image generation model used for portraits
        request_timeout : float
            Timeout in seconds for a single provider call

    Generation Settings:
        temperature : float
            Creativity parameter for text generation (0.8 by default)
        image_size : str
            Requested image resolution, e.g. "1024x1024"
        image_response_format : Literal["url", "b64_json"]
            Whether the image provider returns a URL to download or raw bytes
        image_policy : Literal["per_section", "single"]
            One portrait per section, or a single portrait per world
        max_concurrency : int
            Upper bound on simultaneous provider calls within one phase
            (1 means strictly sequential)
        download_timeout : float
            Timeout in seconds for downloading a generated image

    Paths:
        outputs_dir : Path
            Root directory for per-world output folders
        static_dir : Path | None
            Optional front-end directory served at "/"

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Root logging level applied by the CLI entry point

    Examples
    --------
        >>> custom_config = LoremasterConfig(
        ...     image_policy="single",
        ...     max_concurrency=1,
        ...     outputs_dir="/tmp/lore",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LOREMASTER_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Provider settings
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LOREMASTER_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="API key for the OpenAI-compatible provider",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Custom provider endpoint (None uses the SDK default)",
    )
    text_model: str = Field(
        default="gpt-4-turbo",
        description="Chat completion model for sections and names",
    )
    image_model: str = Field(
        default="dall-e-2",
        description="Image generation model for portraits",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for a single provider call",
        gt=0,
    )

    # Generation settings
    temperature: float = Field(
        default=0.8,
        description="Creativity parameter for text generation",
        ge=0.0,
        le=2.0,
    )
    image_size: str = Field(
        default="1024x1024",
        description="Requested image resolution",
        pattern=r"^\d+x\d+$",
    )
    image_response_format: Literal["url", "b64_json"] = Field(
        default="url",
        description="Return generated images as a URL or inline base64 bytes",
    )
    image_policy: Literal["per_section", "single"] = Field(
        default="per_section",
        description="One portrait per section or one per world",
    )
    max_concurrency: int = Field(
        default=4,
        description="Maximum simultaneous provider calls per phase (1 = sequential)",
        ge=1,
        le=16,
    )
    download_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for downloading a generated image",
        gt=0,
    )

    # Paths
    outputs_dir: Path = Field(
        default=Path("outputs"),
        description="Root directory for generated world folders",
    )
    static_dir: Path | None = Field(
        default=None,
        description="Optional front-end directory served at '/'",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=3000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level for the CLI entry point",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the outputs directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        # parents=True creates missing parents; exist_ok=True makes this repeatable.
        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    @property
    def has_api_key(self) -> bool:
        """Whether a non-empty provider API key is configured."""
        return bool(self.openai_api_key and self.openai_api_key.get_secret_value())


# Global configuration instance
# Loaded from environment variables (LOREMASTER_* prefix) and the .env file.
config = LoremasterConfig()
