"""Failure taxonomy for one generation cycle.

Every error raised by the pipeline derives from ``GenerationError`` so the
HTTP layer can turn it into ``{"error": message}`` without inspecting the
stage that failed.
"""
from __future__ import annotations

from typing import Iterable, List, Optional


class GenerationError(Exception):
    """Base class; ``str(err)`` is what the user sees."""

    status_code = 500


class MissingInputError(GenerationError):
    """User intent or credential absent; raised before any network call."""

    status_code = 400


class ProviderError(GenerationError):
    """The completion endpoint answered with a non-success status or could not be reached."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class MalformedOutputError(GenerationError):
    """Structured model output (plan or explanation) could not be parsed."""


class MalformedPlanError(MalformedOutputError):
    pass


class DisallowedComponentError(GenerationError):
    def __init__(self, components: Iterable[str], allowed: Iterable[str]) -> None:
        self.components: List[str] = list(components)
        self.allowed: List[str] = list(allowed)
        super().__init__(
            f"Invalid component used: {', '.join(self.components)}. "
            f"Only allowed: {', '.join(self.allowed)}"
        )


class CompileError(GenerationError):
    """Generated source cannot be turned into a renderable component."""
