"""Pre-generation helpers: suggested names and a preview portrait.

Before committing to a full world, a user can ask for a species and
civilization name derived from their three words, and for a single preview
portrait.  Neither helper writes to disk.
"""

from __future__ import annotations

import logging

from loremaster.core.models import ImageReference
from loremaster.core.naming import parse_names
from loremaster.core.providers import ImageProvider, TextProvider
from loremaster.core.templates import (
    NAMING_SYSTEM_PROMPT,
    build_naming_prompt,
    build_portrait_prompt,
)

logger = logging.getLogger(__name__)


async def suggest_names(
    provider: TextProvider,
    animal: str,
    culture: str,
    spice: str,
    *,
    temperature: float = 0.8,
) -> tuple[str, str]:
    """Ask the provider for a species name and a civilization name.

    Returns:
        ``(species_name, civilization_name)``.

    Raises:
        ProviderError: If the call fails or no names can be extracted.
    """
    text = await provider.complete(
        NAMING_SYSTEM_PROMPT,
        build_naming_prompt(animal, culture, spice),
        temperature=temperature,
    )
    species_name, civilization_name = parse_names(text)
    logger.info("Suggested names: %s / %s", species_name, civilization_name)
    return species_name, civilization_name


async def preview_portrait(
    provider: ImageProvider,
    animal: str,
    culture: str,
    spice: str,
    *,
    size: str = "1024x1024",
) -> ImageReference:
    """Generate one unsaved portrait for the three seed words.

    Raises:
        ProviderError: If generation fails.
    """
    return await provider.generate_image(build_portrait_prompt(animal, culture, spice), size=size)
