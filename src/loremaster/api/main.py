"""Loremaster — FastAPI Application.

This module is the single entry point for the web application.  It defines
the application factory, the module-level ``app`` instance, all REST API
routes, and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The application is a thin HTTP shell around the core pipeline:

- **Configuration** comes from :class:`~loremaster.core.config.LoremasterConfig`
  and is stored on ``app.state.config``.
- **Provider** — one :class:`~loremaster.core.providers.OpenAIProvider` is
  created at startup and stored on ``app.state.provider``.  Tests replace it
  with a fake by passing ``provider=`` to :func:`create_app`.
- **World generation** is delegated to
  :class:`~loremaster.core.orchestrator.WorldOrchestrator`, built per request
  from the shared provider (it holds no per-run state).
- **Generated files** are served read-only from ``outputs_dir`` at
  ``/outputs/...``.
- **Front-end assets** are served from ``static_dir`` at ``/`` when it is
  configured and exists.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/health``               Version and provider key status
POST      ``/api/generate-names``       Suggest species/civilization names
POST      ``/api/generate-image``       Generate a preview portrait
POST      ``/api/generate-world``       Generate and compile a full world
GET       ``/outputs/...``              Generated images and PDFs
========  ============================  ====================================

Error Mapping
-------------
- :class:`InputError` → 400
- :class:`ProviderError` → 502
- :class:`FatalError` → 500 (single message naming the failed phase)

Usage
-----
CLI (installed entry point)::

    loremaster

Direct invocation::

    python -m loremaster.api.main
"""

from __future__ import annotations

import base64
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from loremaster import __version__
from loremaster.api.models import (
    ImageResponse,
    NamesResponse,
    SectionPayload,
    SeedRequest,
    WorldRequest,
    WorldResponse,
)
from loremaster.core.config import LoremasterConfig, config
from loremaster.core.errors import FatalError, InputError, ProviderError
from loremaster.core.models import ImageReference, WorldResult
from loremaster.core.orchestrator import WorldOrchestrator
from loremaster.core.preview import preview_portrait, suggest_names
from loremaster.core.providers import GenerationProvider, create_provider

logger = logging.getLogger(__name__)

OUTPUTS_MOUNT = "/outputs"


# ---------------------------------------------------------------------------
# Response helpers.
# ---------------------------------------------------------------------------


def _public_url(path: Path, outputs_dir: Path) -> str:
    """Map a file below *outputs_dir* to its ``/outputs/...`` URL."""
    return f"{OUTPUTS_MOUNT}/{path.resolve().relative_to(outputs_dir.resolve()).as_posix()}"


def _image_url(reference: ImageReference) -> str:
    """Return a URL the browser can display for an image reference."""
    if reference.url is not None:
        return reference.url
    encoded = base64.b64encode(reference.data).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def _world_response(result: WorldResult, outputs_dir: Path) -> WorldResponse:
    """Project a :class:`WorldResult` onto the JSON shape the front-end expects."""
    image_urls = {
        key: _public_url(image.local_path, outputs_dir) for key, image in result.images.items()
    }
    return WorldResponse(
        folder=result.folder,
        sections=[
            SectionPayload(
                key=section.key,
                title=section.title,
                content=section.body,
                image_url=image_urls.get(section.key),
            )
            for section in result.sections
        ],
        images=image_urls,
        failures=dict(result.failures),
        pdf_url=_public_url(result.document_path, outputs_dir),
    )


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    settings: LoremasterConfig | None = None,
    provider: GenerationProvider | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration to use.  Defaults to the global ``config``.
        provider: Text and image provider.  Built from *settings* at startup
            when omitted.

    Returns:
        The configured application.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the provider on startup unless one was injected."""
        app.state.config = settings
        app.state.provider = provider if provider is not None else create_provider(settings)
        logger.info("Loremaster API ready (outputs=%s).", settings.outputs_dir)

        yield

        logger.info("Loremaster API shutting down.")

    app = FastAPI(
        title="Loremaster",
        description="Generate illustrated fantasy species and civilizations.",
        version=__version__,
        lifespan=lifespan,
    )

    # Allow cross-origin requests so the front-end can be served from a
    # different port during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.get("/api/health")
    async def health() -> dict:
        """Return the API version and whether a provider key is configured."""
        return {"version": __version__, "provider_configured": settings.has_api_key}

    @app.post("/api/generate-names", response_model=NamesResponse)
    async def generate_names(req: SeedRequest, request: Request) -> NamesResponse:
        """Suggest a species name and a civilization name for the seed words.

        Raises:
            HTTPException: 400 for blank seed words, 502 if the provider
                fails or its answer cannot be parsed.
        """
        _require_seed(req)
        try:
            species_name, civilization_name = await suggest_names(
                request.app.state.provider,
                req.animal.strip(),
                req.culture.strip(),
                req.spice.strip(),
                temperature=settings.temperature,
            )
        except ProviderError as e:
            logger.error("Error generating names: %s", e)
            raise HTTPException(status_code=502, detail="Failed to generate names") from e
        return NamesResponse(species_name=species_name, civilization_name=civilization_name)

    @app.post("/api/generate-image", response_model=ImageResponse)
    async def generate_image(req: SeedRequest, request: Request) -> ImageResponse:
        """Generate a single preview portrait; nothing is written to disk.

        Raises:
            HTTPException: 400 for blank seed words, 502 if the provider fails.
        """
        _require_seed(req)
        try:
            reference = await preview_portrait(
                request.app.state.provider,
                req.animal.strip(),
                req.culture.strip(),
                req.spice.strip(),
                size=settings.image_size,
            )
        except ProviderError as e:
            logger.error("Error generating image: %s", e)
            raise HTTPException(status_code=502, detail="Failed to generate image") from e
        return ImageResponse(image_url=_image_url(reference))

    @app.post("/api/generate-world", response_model=WorldResponse)
    async def generate_world(req: WorldRequest, request: Request) -> WorldResponse:
        """Generate every section and image and compile the world PDF.

        Per-section and per-image failures are reported in ``failures``
        and do not fail the request.

        Raises:
            HTTPException: 400 for missing fields, 500 if the document
                cannot be produced.
        """
        orchestrator = WorldOrchestrator(request.app.state.provider, settings)
        try:
            result = await orchestrator.generate_world(req.to_generation_request())
        except InputError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except FatalError as e:
            logger.error("Error generating world: %s", e)
            raise HTTPException(status_code=500, detail=str(e)) from e
        return _world_response(result, settings.outputs_dir)

    # -----------------------------------------------------------------------
    # Static files.  Mounted after the API routes so "/" cannot shadow them.
    # -----------------------------------------------------------------------
    app.mount(
        OUTPUTS_MOUNT,
        StaticFiles(directory=str(settings.outputs_dir)),
        name="outputs",
    )
    if settings.static_dir is not None and settings.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(settings.static_dir), html=True), name="frontend")

    return app


def _require_seed(req: SeedRequest) -> None:
    """Reject seed requests with blank words.

    Raises:
        HTTPException: 400 naming every blank field.
    """
    missing = [name for name in ("animal", "culture", "spice") if not getattr(req, name).strip()]
    if missing:
        raise HTTPException(status_code=400, detail=str(InputError(missing)))


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~loremaster.core.config.config`
    (``LOREMASTER_SERVER_HOST``, ``LOREMASTER_SERVER_PORT``,
    ``LOREMASTER_LOG_LEVEL``).  Defaults to ``0.0.0.0:3000``.

    This function is registered as the ``loremaster`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "loremaster.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
