"""Shared pytest fixtures for Loremaster tests."""

from __future__ import annotations

import asyncio
import io
import shutil
import tempfile
from collections.abc import Generator, Iterable
from pathlib import Path

import httpx
import pytest
from PIL import Image

from loremaster.core.config import LoremasterConfig
from loremaster.core.errors import ProviderError
from loremaster.core.models import GenerationRequest, ImageReference
from loremaster.core.providers import GenerationProvider


def make_png(size: tuple[int, int] = (64, 32), color=(200, 80, 40)) -> bytes:
    """Encode a small solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeProvider(GenerationProvider):
    """In-memory provider that records every call.

    Text completions echo the first line of the prompt so tests can check
    which template produced which section.  Any prompt containing one of the
    ``fail_on`` substrings raises :class:`ProviderError`.

    Args:
        fail_on: Substrings that make a text or image call fail.
        image_mode: ``"data"`` to return inline PNG bytes, ``"url"`` to
            return a URL served by an ``httpx.MockTransport``.
        reverse_delay: When set, call ``n`` of ``total`` sleeps
            ``(total - n) * reverse_delay`` seconds so that later calls
            finish first.
        completion: Fixed completion text that overrides the echo.
    """

    name = "Fake"

    def __init__(
        self,
        *,
        fail_on: Iterable[str] = (),
        image_mode: str = "data",
        reverse_delay: float | None = None,
        total_calls: int = 7,
        completion: str | None = None,
    ) -> None:
        self.fail_on = tuple(fail_on)
        self.image_mode = image_mode
        self.reverse_delay = reverse_delay
        self.total_calls = total_calls
        self.completion = completion
        self.text_calls: list[tuple[str, str, float]] = []
        self.image_calls: list[tuple[str, str]] = []
        self.downloads: list[str] = []
        self.png = make_png()

    def _check(self, prompt: str) -> None:
        for marker in self.fail_on:
            if marker in prompt:
                raise ProviderError(f"fake failure for {marker!r}")

    async def complete(self, system_prompt: str, user_prompt: str, *, temperature: float) -> str:
        index = len(self.text_calls)
        self.text_calls.append((system_prompt, user_prompt, temperature))
        if self.reverse_delay is not None:
            await asyncio.sleep(max(self.total_calls - index, 0) * self.reverse_delay)
        self._check(user_prompt)
        if self.completion is not None:
            return self.completion
        return f"  ## Echo\n\n{user_prompt.splitlines()[0][:60]}  \n"

    async def generate_image(self, prompt: str, *, size: str) -> ImageReference:
        self.image_calls.append((prompt, size))
        self._check(prompt)
        if self.image_mode == "url":
            return ImageReference(url=f"https://images.example/{len(self.image_calls)}.png")
        return ImageReference(data=self.png)

    def _download_transport(self) -> httpx.AsyncBaseTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            self.downloads.append(str(request.url))
            return httpx.Response(200, content=self.png, headers={"content-type": "image/png"})

        return httpx.MockTransport(handler)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> LoremasterConfig:
    """Create a test configuration writing into a temporary outputs directory."""
    return LoremasterConfig(
        _env_file=None,
        openai_api_key="sk-test",
        outputs_dir=str(temp_dir / "outputs"),
        max_concurrency=7,
        image_policy="per_section",
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    """A provider that succeeds on every call and returns inline PNG bytes."""
    return FakeProvider()


@pytest.fixture
def sample_request() -> GenerationRequest:
    """The fox / steppe / fire-dancing request used across the suite."""
    return GenerationRequest(
        animal="fox",
        culture="nomadic steppe tribes",
        spice="ritual fire-dancing",
        species_name="Vreshari",
        civilization_name="Emberkin",
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    return make_png()


@pytest.fixture
def provider_factory() -> type[FakeProvider]:
    """The :class:`FakeProvider` class, for tests that need custom behaviour."""
    return FakeProvider
