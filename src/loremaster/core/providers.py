"""Generative provider adapters for Loremaster.

This module wraps the external text-completion and image-generation services
behind two small abstract interfaces so that the pipeline never talks to a
vendor SDK directly.

Adapter Pattern
---------------
Each adapter encapsulates:

- client construction from an explicitly passed configuration
- the request shape expected by the vendor
- translation of vendor failures into :class:`~loremaster.core.errors.ProviderError`

:class:`TextProvider` returns plain completion text.  :class:`ImageProvider`
returns an :class:`~loremaster.core.models.ImageReference`, which holds either
a remote URL or the image bytes themselves.  :meth:`ImageProvider.fetch_bytes`
resolves either form to bytes, downloading URLs with ``httpx``; adapters that
have a faster route may override it.

:class:`GenerationProvider` combines both interfaces; it is what the world
pipeline and the API layer accept.

Usage Example
-------------
::

    from loremaster.core.config import config
    from loremaster.core.providers import create_provider

    provider = create_provider(config)
    text = await provider.complete(SYSTEM_PROMPT, prompt, temperature=0.8)
    ref = await provider.generate_image(portrait_prompt, size="1024x1024")
    data = await provider.fetch_bytes(ref)

See Also
--------
- LoremasterConfig: provider settings (model names, timeouts, image format)
"""

from __future__ import annotations

import base64
import binascii
import logging
from abc import ABC, abstractmethod

import httpx
import openai

from loremaster.core.config import LoremasterConfig
from loremaster.core.errors import ProviderError
from loremaster.core.models import ImageReference

logger = logging.getLogger(__name__)


class TextProvider(ABC):
    """Abstract base class for text-completion providers."""

    name: str = "Base Text Provider"

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
    ) -> str:
        """Return a single completion for a system + user message pair.

        Raises:
            ProviderError: If the call fails or the completion is empty.
        """


class ImageProvider(ABC):
    """Abstract base class for image-generation providers.

    Attributes:
        download_timeout: Seconds allowed for downloading a URL reference.
    """

    name: str = "Base Image Provider"
    download_timeout: float = 60.0

    @abstractmethod
    async def generate_image(self, prompt: str, *, size: str) -> ImageReference:
        """Request exactly one image for *prompt* at *size*.

        Raises:
            ProviderError: If the call fails or no image is returned.
        """

    async def fetch_bytes(self, reference: ImageReference) -> bytes:
        """Resolve an image reference to its encoded bytes.

        Direct-bytes references are returned as-is; URL references are
        downloaded.

        Raises:
            ProviderError: If the download fails or returns no content.
        """
        if reference.data is not None:
            return reference.data

        logger.info("Downloading generated image from %s", reference.url)
        try:
            async with httpx.AsyncClient(
                timeout=self.download_timeout,
                follow_redirects=True,
                transport=self._download_transport(),
            ) as client:
                response = await client.get(reference.url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProviderError(f"Image download failed: {e}") from e

        if not response.content:
            raise ProviderError(f"Image download returned no content: {reference.url}")
        return response.content

    def _download_transport(self) -> httpx.AsyncBaseTransport | None:
        """Transport used for downloads (``None`` = httpx default)."""
        return None


class GenerationProvider(TextProvider, ImageProvider):
    """A provider that offers both text completion and image generation.

    World generation issues text and image calls through one object, so the
    orchestrator and the API layer depend on this combined interface.
    """

    name: str = "Base Generation Provider"


class OpenAIProvider(GenerationProvider):
    """Text and image provider backed by the OpenAI API.

    The SDK client is created lazily on first use so that a missing API key
    surfaces as a :class:`ProviderError` on the affected call rather than at
    application startup.
    """

    name = "OpenAI"

    def __init__(
        self,
        config: LoremasterConfig,
        client: openai.AsyncOpenAI | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            config: Application configuration (models, timeouts, image format).
            client: Pre-built SDK client.  Built from *config* when omitted.
            transport: Optional httpx transport for image downloads.
        """
        self._config = config
        self._client = client
        self._transport = transport
        self.download_timeout = config.download_timeout

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self._config.has_api_key:
                raise ProviderError(
                    "No provider API key configured "
                    "(set OPENAI_API_KEY or LOREMASTER_OPENAI_API_KEY)"
                )
            self._client = openai.AsyncOpenAI(
                api_key=self._config.openai_api_key.get_secret_value(),
                base_url=self._config.openai_base_url,
                timeout=self._config.request_timeout,
            )
        return self._client

    def _download_transport(self) -> httpx.AsyncBaseTransport | None:
        return self._transport

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
    ) -> str:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self._config.text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"Text generation failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise ProviderError("Text generation returned an empty completion")
        return content

    async def generate_image(self, prompt: str, *, size: str) -> ImageReference:
        client = self._get_client()
        try:
            response = await client.images.generate(
                model=self._config.image_model,
                prompt=prompt,
                n=1,
                size=size,
                response_format=self._config.image_response_format,
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"Image generation failed: {e}") from e

        if not response.data:
            raise ProviderError("Image generation returned no images")
        image = response.data[0]

        if image.b64_json:
            try:
                return ImageReference(data=base64.b64decode(image.b64_json, validate=True))
            except (binascii.Error, ValueError) as e:
                raise ProviderError(f"Image payload is not valid base64: {e}") from e
        if image.url:
            return ImageReference(url=image.url)
        raise ProviderError("Image generation returned neither a URL nor image data")


def create_provider(config: LoremasterConfig) -> OpenAIProvider:
    """Build the configured provider.

    Args:
        config: Application configuration.

    Returns:
        A provider implementing both :class:`TextProvider` and
        :class:`ImageProvider`.
    """
    provider = OpenAIProvider(config)
    logger.info(
        "Initialized %s provider (text=%s, image=%s, format=%s)",
        provider.name,
        config.text_model,
        config.image_model,
        config.image_response_format,
    )
    if not config.has_api_key:
        logger.warning("No provider API key configured; generation calls will fail.")
    return provider
