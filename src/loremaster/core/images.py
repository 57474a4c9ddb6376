"""Portrait generation and persistence.

Each image is generated, resolved to bytes (downloaded or inline, depending on
the provider) and written to a deterministic path inside the world's output
folder, overwriting any earlier file.  Images are handled independently: a
failure generating or writing one image never blocks the others.

Images are always stored as PNG.  Providers may hand back other formats
(JPEG, WebP); those are re-encoded with Pillow before writing, and bytes that
Pillow cannot read count as a provider failure.

Image Policy
------------
``per_section``
    One portrait per section key, each prompt carrying the key as context,
    stored as ``<folder>/<key>.png``.
``single``
    One portrait for the whole world, stored as ``<folder>/portrait.png``
    under the key ``"portrait"``.
"""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Sequence
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from loremaster.core.errors import PersistenceError, ProviderError
from loremaster.core.models import GenerationRequest, ImageResult
from loremaster.core.providers import ImageProvider
from loremaster.core.templates import build_portrait_prompt

logger = logging.getLogger(__name__)

PORTRAIT_KEY = "portrait"
IMAGE_EXTENSION = ".png"

_PNG_FORMAT = "PNG"


def image_path(folder_path: Path, key: str) -> Path:
    """Path where the image for *key* is stored."""
    return folder_path / f"{key}{IMAGE_EXTENSION}"


def ensure_png(data: bytes) -> bytes:
    """Return *data* as PNG bytes, re-encoding other image formats.

    Raises:
        ProviderError: If *data* is not an image Pillow can read.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format == _PNG_FORMAT:
                return data
            logger.info("Re-encoding %s image as PNG", img.format)
            mode = "RGBA" if "A" in img.getbands() else "RGB"
            buffer = io.BytesIO()
            img.convert(mode).save(buffer, format=_PNG_FORMAT)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise ProviderError(f"Generated image could not be read: {e}") from e
    return buffer.getvalue()


def write_image(data: bytes, destination: Path) -> None:
    """Write image bytes, creating the parent directory first.

    Raises:
        PersistenceError: If the directory or the file cannot be written.
    """
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
    except OSError as e:
        raise PersistenceError(f"Could not write {destination}: {e}", path=destination) from e


async def fetch_and_store(
    provider: ImageProvider,
    prompt: str,
    destination: Path,
    *,
    key: str,
    size: str = "1024x1024",
) -> ImageResult:
    """Generate one image and persist it to *destination*.

    Args:
        provider: Image provider.
        prompt: Image prompt.
        destination: File path to write; overwritten if it exists.
        key: Key the image is filed under.
        size: Requested resolution.

    Returns:
        The persisted :class:`ImageResult`.

    Raises:
        ProviderError: If generation or download fails, or the bytes are not
            a readable image.
        PersistenceError: If the file cannot be written.
    """
    reference = await provider.generate_image(prompt, size=size)
    data = ensure_png(await provider.fetch_bytes(reference))
    write_image(data, destination)
    logger.info("Saved image '%s' to %s (%d bytes)", key, destination, len(data))
    return ImageResult(key=key, local_path=destination, source_url=reference.url)


def plan_images(
    request: GenerationRequest,
    keys: Sequence[str],
    policy: str,
) -> list[tuple[str, str]]:
    """Return ``(key, prompt)`` pairs for the images a run should produce."""
    if policy == "single":
        return [
            (PORTRAIT_KEY, build_portrait_prompt(request.animal, request.culture, request.spice))
        ]
    if policy == "per_section":
        return [
            (key, build_portrait_prompt(request.animal, request.culture, request.spice, key))
            for key in keys
        ]
    raise ValueError(f"Unknown image policy: {policy!r}")


async def fetch_images(
    provider: ImageProvider,
    request: GenerationRequest,
    folder_path: Path,
    *,
    keys: Sequence[str],
    policy: str = "per_section",
    size: str = "1024x1024",
    max_concurrency: int = 4,
) -> tuple[dict[str, ImageResult], dict[str, str]]:
    """Generate and persist every image a run needs.

    Args:
        provider: Image provider.
        request: Validated generation request.
        folder_path: The world's output folder.
        keys: Section keys, in template order.
        policy: ``"per_section"`` or ``"single"``.
        size: Requested resolution.
        max_concurrency: Maximum number of images in flight at once.

    Returns:
        Tuple of ``(images, failures)``: persisted images by key and, for each
        failed key, the error message.
    """
    plan = plan_images(request, keys, policy)
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _run(key: str, prompt: str) -> ImageResult | Exception:
        async with semaphore:
            try:
                return await fetch_and_store(
                    provider, prompt, image_path(folder_path, key), key=key, size=size
                )
            except (ProviderError, PersistenceError) as e:
                logger.warning("Image '%s' failed: %s", key, e)
                return e

    tasks = [asyncio.ensure_future(_run(key, prompt)) for key, prompt in plan]
    try:
        outcomes = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise

    images: dict[str, ImageResult] = {}
    failures: dict[str, str] = {}
    for (key, _), outcome in zip(plan, outcomes):
        if isinstance(outcome, ImageResult):
            images[key] = outcome
        else:
            failures[key] = str(outcome)

    logger.info("Stored %d of %d images in %s", len(images), len(plan), folder_path)
    return images, failures
