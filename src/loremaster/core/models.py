"""Data models for the world-generation pipeline.

All models are immutable and created fresh for every run.  Durable state lives
only in the files written below the output folder.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from types import MappingProxyType

from loremaster.core.errors import InputError


@dataclass(frozen=True)
class GenerationRequest:
    """The five user-supplied words that seed a world.

    All fields are opaque free text.  They are interpolated into prompts as-is
    and never executed or parsed.
    """

    animal: str
    culture: str
    spice: str
    species_name: str
    civilization_name: str

    def validate(self) -> None:
        """Check that every field is present and non-blank.

        Raises:
            InputError: Listing every missing field, in declaration order.
        """
        missing = [
            f.name
            for f in fields(self)
            if not isinstance(getattr(self, f.name), str) or not getattr(self, f.name).strip()
        ]
        if missing:
            raise InputError(missing)

    @property
    def title(self) -> str:
        """Cover title composed from the species and civilization names."""
        return f"The {self.species_name.strip()} of {self.civilization_name.strip()}"


@dataclass(frozen=True)
class SectionResult:
    """Generated markdown body for one section template."""

    key: str
    title: str
    body: str


@dataclass(frozen=True)
class ImageReference:
    """What an image provider hands back for one generated image.

    Exactly one of ``url`` and ``data`` is set.  A URL must be downloaded
    before use; ``data`` already holds the encoded image bytes.
    """

    url: str | None = None
    data: bytes | None = None

    def __post_init__(self) -> None:
        if (self.url is None) == (self.data is None):
            raise ValueError("ImageReference needs exactly one of url or data")


@dataclass(frozen=True)
class ImageResult:
    """A generated image persisted to disk."""

    key: str
    local_path: Path
    source_url: str | None = None


class WorldPhase(str, Enum):
    """States of a single world-generation run."""

    IDLE = "idle"
    NAMING_OUTPUT_FOLDER = "naming_output_folder"
    GENERATING_SECTIONS = "generating_sections"
    FETCHING_IMAGES = "fetching_images"
    COMPILING_DOCUMENT = "compiling_document"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class WorldResult:
    """Complete output of one orchestration run.

    Attributes:
        sections: Successfully generated sections, in template order.
        images: Persisted images keyed by section key (or ``"portrait"``).
        document_path: Path of the compiled PDF.
        folder: Name of the output folder below ``outputs_dir``.
        failures: Reason for every absent section or image, keyed as
            ``"section:<key>"`` or ``"image:<key>"``.
    """

    sections: tuple[SectionResult, ...]
    images: Mapping[str, ImageResult]
    document_path: Path
    folder: str
    failures: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the mappings so callers cannot mutate a returned result.
        object.__setattr__(self, "images", MappingProxyType(dict(self.images)))
        object.__setattr__(self, "failures", MappingProxyType(dict(self.failures)))

    @property
    def section_keys(self) -> list[str]:
        return [s.key for s in self.sections]
