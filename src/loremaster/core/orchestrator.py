"""World generation orchestrator.

:class:`WorldOrchestrator` composes the pipeline into a single operation,
:meth:`~WorldOrchestrator.generate_world`, which moves through these phases::

    IDLE -> NAMING_OUTPUT_FOLDER -> GENERATING_SECTIONS -> FETCHING_IMAGES
         -> COMPILING_DOCUMENT -> DONE

Any phase can end in ``FAILED``, but only for an unrecoverable error: failed
sections and images are recorded in :attr:`WorldResult.failures` and the run
carries on.  Invalid requests are rejected with
:class:`~loremaster.core.errors.InputError` before the first phase, so no
provider call is made and no file is written.

The orchestrator holds no per-run state, so one instance can serve
concurrent requests.  Two runs for the same species/civilization pair write
into the same folder and the last writer wins.

Usage
-----
::

    orchestrator = WorldOrchestrator(create_provider(config), config)
    result = await orchestrator.generate_world(request)
    print(result.document_path)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from loremaster.core.config import LoremasterConfig
from loremaster.core.document import DOCUMENT_EXTENSION, compile_document_async
from loremaster.core.errors import FatalError
from loremaster.core.images import PORTRAIT_KEY, fetch_images
from loremaster.core.models import GenerationRequest, WorldPhase, WorldResult
from loremaster.core.naming import name_folder
from loremaster.core.providers import GenerationProvider
from loremaster.core.sections import generate_sections
from loremaster.core.templates import SECTION_TEMPLATES, SectionTemplate

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[WorldPhase], None]


class WorldOrchestrator:
    """Runs the full world-generation pipeline for one request at a time.

    Attributes:
        provider: Text and image provider used for every call.
        config: Application configuration (paths, policy, concurrency).
        templates: Ordered section templates.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        config: LoremasterConfig,
        templates: Sequence[SectionTemplate] = SECTION_TEMPLATES,
    ) -> None:
        self.provider = provider
        self.config = config
        self.templates = tuple(templates)

    async def generate_world(
        self,
        request: GenerationRequest,
        *,
        on_phase: PhaseCallback | None = None,
    ) -> WorldResult:
        """Generate sections and images and compile the world document.

        Args:
            request: The user's generation request.
            on_phase: Optional callback invoked with each phase as it is
                entered, including ``DONE`` or ``FAILED``.

        Returns:
            The populated :class:`WorldResult`.

        Raises:
            InputError: If a required request field is missing or blank.
            FatalError: If the run cannot produce a document.
        """
        request.validate()

        phase = WorldPhase.IDLE

        def enter(next_phase: WorldPhase) -> None:
            nonlocal phase
            logger.info("World '%s': %s -> %s", request.title, phase.value, next_phase.value)
            phase = next_phase
            if on_phase is not None:
                on_phase(next_phase)

        try:
            enter(WorldPhase.NAMING_OUTPUT_FOLDER)
            folder = name_folder(request.species_name, request.civilization_name)
            folder_path = self.config.outputs_dir / folder

            enter(WorldPhase.GENERATING_SECTIONS)
            sections, section_failures = await generate_sections(
                self.provider,
                request,
                self.templates,
                temperature=self.config.temperature,
                max_concurrency=self.config.max_concurrency,
            )

            enter(WorldPhase.FETCHING_IMAGES)
            images, image_failures = await fetch_images(
                self.provider,
                request,
                folder_path,
                keys=[t.key for t in self.templates],
                policy=self.config.image_policy,
                size=self.config.image_size,
                max_concurrency=self.config.max_concurrency,
            )

            enter(WorldPhase.COMPILING_DOCUMENT)
            document_path = await compile_document_async(
                sections,
                images,
                request.title,
                folder_path / f"{folder}{DOCUMENT_EXTENSION}",
                cover_image_key=PORTRAIT_KEY if self.config.image_policy == "single" else None,
            )
        except FatalError:
            enter(WorldPhase.FAILED)
            raise
        except Exception as e:
            failed_phase = phase
            logger.exception("World '%s' failed during %s", request.title, failed_phase.value)
            enter(WorldPhase.FAILED)
            raise FatalError(failed_phase.value, str(e)) from e

        failures = {f"section:{key}": reason for key, reason in section_failures.items()}
        failures.update({f"image:{key}": reason for key, reason in image_failures.items()})

        enter(WorldPhase.DONE)
        return WorldResult(
            sections=sections,
            images=images,
            document_path=document_path,
            folder=folder,
            failures=failures,
        )
