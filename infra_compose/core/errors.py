"""Error taxonomy for composition passes."""

from __future__ import annotations


class CompositionError(Exception):
    """Base class for every error raised while composing declarations."""


class ConfigurationError(CompositionError, ValueError):
    """Raised when caller input violates an invariant of the requested intent."""


class DuplicateDeclarationError(ConfigurationError):
    """Raised when a logical name is declared twice within one sink."""

    def __init__(self, logical_name: str) -> None:
        super().__init__(f"Resource '{logical_name}' is already declared in this composition scope")
        self.logical_name = logical_name


class ArtifactError(CompositionError):
    """Raised when a code artifact cannot be resolved or synthesized."""


class UnresolvedReferenceError(CompositionError):
    """Raised when a reference or dependency points at an unknown declaration."""

    def __init__(self, logical_name: str, *, referenced_by: str | None = None) -> None:
        detail = f" (referenced by '{referenced_by}')" if referenced_by else ""
        super().__init__(f"Declaration '{logical_name}' does not exist{detail}")
        self.logical_name = logical_name
        self.referenced_by = referenced_by
