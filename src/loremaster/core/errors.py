"""Error taxonomy for the world-generation pipeline.

Only :class:`FatalError` aborts a whole run.  :class:`ProviderError` and
:class:`PersistenceError` are scoped to a single section or image and are
recovered by the pipeline, which records them as absent entries.
:class:`InputError` is raised before any provider call is made.
"""

from __future__ import annotations

from pathlib import Path


class LoremasterError(Exception):
    """Base class for all Loremaster errors."""


class InputError(LoremasterError):
    """A generation request is missing one or more required fields.

    Attributes:
        missing: Names of the fields that were missing or blank.
    """

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required field(s): {', '.join(self.missing)}")


class ProviderError(LoremasterError):
    """A text or image provider call failed.

    Covers network and authentication failures, rate limiting, and
    malformed or empty responses.

    Attributes:
        key: Section or image key the failure is attributed to, if any.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class PersistenceError(LoremasterError):
    """A directory could not be created or a file could not be written.

    Attributes:
        path: The path that could not be written.
    """

    def __init__(self, message: str, *, path: Path) -> None:
        self.path = path
        super().__init__(message)


class FatalError(LoremasterError):
    """An unrecoverable failure that ends the whole run.

    Attributes:
        phase: Name of the pipeline phase that failed.
        reason: Human-readable cause.
    """

    def __init__(self, phase: str, reason: str) -> None:
        self.phase = phase
        self.reason = reason
        super().__init__(f"World generation failed during {phase}: {reason}")
