"""Pydantic request and response models for the Loremaster API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.  Field names are snake_case in Python and
camelCase on the wire, matching the browser front-end.

Models
------
SeedRequest
    Payload for ``POST /api/generate-names`` and ``POST /api/generate-image``
    — the three seed words.
WorldRequest
    Payload for ``POST /api/generate-world`` — the seed words plus the chosen
    species and civilization names.
NamesResponse, ImageResponse, SectionPayload, WorldResponse
    Response bodies.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from loremaster.core.models import GenerationRequest


class _CamelModel(BaseModel):
    """Base model that accepts and emits camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SeedRequest(_CamelModel):
    """Request body carrying the three seed words.

    Every field defaults to an empty string so that an omitted word is
    reported as a 400 by the route rather than a schema error.

    Attributes:
        animal: Animal the species is modelled on.
        culture: Real-world culture that inspires the civilization.
        spice: Theme that drives the civilization.
    """

    animal: str = Field("", description="Animal the species is modelled on (e.g. 'fox').")
    culture: str = Field("", description="Culture that inspires the civilization.")
    spice: str = Field("", description="Theme that drives the civilization.")


class WorldRequest(SeedRequest):
    """Request body for ``POST /api/generate-world``.

    Missing and blank values are accepted here and rejected by the
    orchestrator with a 400 response naming every missing field.

    Attributes:
        species_name: Invented species name (``speciesName`` on the wire).
        civilization_name: Invented civilization name (``civilizationName``).
    """

    species_name: str = Field("", description="Invented species name.")
    civilization_name: str = Field("", description="Invented civilization name.")

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            animal=self.animal.strip(),
            culture=self.culture.strip(),
            spice=self.spice.strip(),
            species_name=self.species_name.strip(),
            civilization_name=self.civilization_name.strip(),
        )


class NamesResponse(_CamelModel):
    """Response body for ``POST /api/generate-names``."""

    species_name: str
    civilization_name: str


class ImageResponse(_CamelModel):
    """Response body for ``POST /api/generate-image``.

    Attributes:
        image_url: Remote URL, or a ``data:`` URI when the provider returned
            the image bytes directly.
    """

    image_url: str


class SectionPayload(_CamelModel):
    """One generated section as shown by the front-end."""

    key: str
    title: str
    content: str
    image_url: str | None = None


class WorldResponse(_CamelModel):
    """Response body for ``POST /api/generate-world``.

    Attributes:
        folder: Output folder name below ``outputs/``.
        sections: Generated sections in template order.
        images: Public URL of every stored image, by key.
        failures: Reason for every missing section or image.
        pdf_url: Public URL of the compiled document.
    """

    folder: str
    sections: list[SectionPayload]
    images: dict[str, str] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)
    pdf_url: str
