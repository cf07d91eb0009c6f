"""Declarative composition of AWS infrastructure intents."""

from .core.declarations import AttributeReference, DeclarationSink, ResourceDeclaration
from .core.errors import (
    ArtifactError,
    CompositionError,
    ConfigurationError,
    DuplicateDeclarationError,
    UnresolvedReferenceError,
)

__all__ = [
    "AttributeReference",
    "DeclarationSink",
    "ResourceDeclaration",
    "ArtifactError",
    "CompositionError",
    "ConfigurationError",
    "DuplicateDeclarationError",
    "UnresolvedReferenceError",
]
