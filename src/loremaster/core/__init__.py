"""Core functionality for world generation.

This module provides the core components of Loremaster:

- **LoremasterConfig / config**: Configuration management using Pydantic Settings
- **Providers**: Adapters for the external text and image generation services
- **WorldOrchestrator**: The full pipeline behind ``generate_world``

Architecture Overview
---------------------
The core module follows a layered architecture:

1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with LOREMASTER_ in .env files

2. **Provider Layer** (providers.py):
   - Abstract text and image provider interfaces
   - OpenAI implementation; failures surface as ProviderError

3. **Pipeline Stages**:
   - templates.py: Ordered section templates and portrait/naming prompts
   - naming.py: Output folder naming and name extraction
   - sections.py: Concurrent section generation
   - images.py: Portrait generation and persistence
   - document.py: PDF compilation with ReportLab

4. **Orchestration** (orchestrator.py, preview.py):
   - WorldOrchestrator runs the phases in order
   - suggest_names / preview_portrait for the pre-generation steps

Usage Example
-------------
::

    from loremaster.core import GenerationRequest, WorldOrchestrator, config, create_provider

    orchestrator = WorldOrchestrator(create_provider(config), config)
    result = await orchestrator.generate_world(
        GenerationRequest(
            animal="fox",
            culture="nomadic steppe tribes",
            spice="ritual fire-dancing",
            species_name="Vreshari",
            civilization_name="Emberkin",
        )
    )
"""

from loremaster.core.config import LoremasterConfig, config
from loremaster.core.errors import (
    FatalError,
    InputError,
    LoremasterError,
    PersistenceError,
    ProviderError,
)
from loremaster.core.models import (
    GenerationRequest,
    ImageReference,
    ImageResult,
    SectionResult,
    WorldPhase,
    WorldResult,
)
from loremaster.core.orchestrator import WorldOrchestrator
from loremaster.core.providers import (
    GenerationProvider,
    ImageProvider,
    OpenAIProvider,
    TextProvider,
    create_provider,
)

__all__ = [
    "FatalError",
    "GenerationProvider",
    "GenerationRequest",
    "ImageProvider",
    "ImageReference",
    "ImageResult",
    "InputError",
    "LoremasterConfig",
    "LoremasterError",
    "OpenAIProvider",
    "PersistenceError",
    "ProviderError",
    "SectionResult",
    "TextProvider",
    "WorldOrchestrator",
    "WorldPhase",
    "WorldResult",
    "config",
    "create_provider",
]
