"""Loremaster - AI-generated fantasy species and civilizations, compiled to PDF."""

__version__ = "0.1.0"

from loremaster.core.config import LoremasterConfig, config
from loremaster.core.models import GenerationRequest, WorldResult
from loremaster.core.orchestrator import WorldOrchestrator

__all__ = [
    "GenerationRequest",
    "LoremasterConfig",
    "WorldOrchestrator",
    "WorldResult",
    "config",
]
