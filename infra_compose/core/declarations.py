"""Inert resource declarations and the append-only sink that collects them.

A composition pass never touches live infrastructure. Every composer appends
:class:`ResourceDeclaration` objects to a :class:`DeclarationSink`; values that
only exist after realization (ARNs, version numbers, name servers) are threaded
through as :class:`AttributeReference` handles and resolved later by whichever
backend consumes the sink.
"""

from __future__ import annotations

import json
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from infra_compose.core.errors import DuplicateDeclarationError, UnresolvedReferenceError
from infra_compose.logging_utils import get_logger

logger = get_logger(__name__)

REF = "Ref"

LOGICAL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,254}$")


class DeclarationMode(str, Enum):
    """Whether a declaration creates an object or looks up an existing one."""

    MANAGED = "managed"
    DATA = "data"


@dataclass(frozen=True)
class AttributeReference:
    """Lazy pointer to an attribute another declaration will have once realized."""

    logical_name: str
    attribute: str = REF

    @property
    def is_primary(self) -> bool:
        return self.attribute == REF

    def to_dict(self) -> Dict[str, str]:
        return {"ref": self.logical_name, "attribute": self.attribute}

    def __str__(self) -> str:
        return f"${{{self.logical_name}.{self.attribute}}}"


@dataclass(frozen=True)
class Lifecycle:
    """Lifecycle directives passed through to the backend."""

    ignore_changes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"ignore_changes": list(self.ignore_changes)}


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Return a plain JSON-compatible copy of a frozen attribute value."""
    if isinstance(value, AttributeReference):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


def iter_references(value: Any) -> Iterator[AttributeReference]:
    """Yield every AttributeReference nested inside an attribute value."""
    if isinstance(value, AttributeReference):
        yield value
    elif isinstance(value, Mapping):
        for nested in value.values():
            yield from iter_references(nested)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


@dataclass(frozen=True)
class ResourceDeclaration:
    """Description of a desired resource, immutable once constructed."""

    kind: str
    logical_name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    depends_on: Tuple[str, ...] = ()
    lifecycle: Lifecycle = field(default_factory=Lifecycle)
    mode: DeclarationMode = DeclarationMode.MANAGED

    def __post_init__(self) -> None:
        if not LOGICAL_NAME_PATTERN.fullmatch(self.logical_name or ""):
            raise ValueError(f"Invalid logical name: {self.logical_name!r}")
        object.__setattr__(self, "attributes", _freeze(dict(self.attributes)))
        ordered: List[str] = []
        for name in self.depends_on:
            if name not in ordered:
                ordered.append(name)
        object.__setattr__(self, "depends_on", tuple(ordered))

    def ref(self) -> AttributeReference:
        """Reference to the primary identifier of this declaration."""
        return AttributeReference(self.logical_name, REF)

    def attr(self, name: str) -> AttributeReference:
        return AttributeReference(self.logical_name, name)

    def references(self) -> List[AttributeReference]:
        return list(iter_references(self.attributes))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "kind": self.kind,
            "logical_name": self.logical_name,
            "mode": self.mode.value,
            "attributes": thaw(self.attributes),
            "depends_on": list(self.depends_on),
        }
        if self.lifecycle.ignore_changes:
            payload["lifecycle"] = self.lifecycle.to_dict()
        return payload


class DeclarationSink:
    """Append-only arena of declarations keyed by logical name.

    Appends must arrive in dependency order: every ``depends_on`` entry and every
    nested reference has to name a declaration that is already visible. Use
    :meth:`transaction` to make a group of appends all-or-nothing.
    """

    def __init__(self, scope: str = "default") -> None:
        self.scope = scope
        self._committed: Dict[str, ResourceDeclaration] = {}
        self._stages: List[Dict[str, ResourceDeclaration]] = []

    def _lookup(self, logical_name: str) -> Optional[ResourceDeclaration]:
        for stage in reversed(self._stages):
            if logical_name in stage:
                return stage[logical_name]
        return self._committed.get(logical_name)

    def append(self, declaration: ResourceDeclaration) -> ResourceDeclaration:
        """Register a declaration, rejecting duplicates and forward references."""
        if self._lookup(declaration.logical_name) is not None:
            raise DuplicateDeclarationError(declaration.logical_name)
        for dependency in declaration.depends_on:
            if self._lookup(dependency) is None:
                raise UnresolvedReferenceError(dependency, referenced_by=declaration.logical_name)
        for reference in declaration.references():
            if self._lookup(reference.logical_name) is None:
                raise UnresolvedReferenceError(reference.logical_name, referenced_by=declaration.logical_name)

        target = self._stages[-1] if self._stages else self._committed
        target[declaration.logical_name] = declaration
        logger.debug(
            "Declaration appended",
            extra={"scope": self.scope, "kind": declaration.kind, "logical_name": declaration.logical_name},
        )
        return declaration

    @contextmanager
    def transaction(self) -> Iterator["DeclarationSink"]:
        """Stage appends and keep them only if the block finishes without error."""
        stage: Dict[str, ResourceDeclaration] = {}
        self._stages.append(stage)
        try:
            yield self
        except BaseException:
            self._stages.pop()
            if stage:
                logger.warning(
                    "Composition aborted; discarding staged declarations",
                    extra={"scope": self.scope, "discarded": len(stage)},
                )
            raise
        self._stages.pop()
        parent = self._stages[-1] if self._stages else self._committed
        parent.update(stage)

    def get(self, logical_name: str) -> ResourceDeclaration:
        declaration = self._lookup(logical_name)
        if declaration is None:
            raise UnresolvedReferenceError(logical_name)
        return declaration

    def of_kind(self, kind: str) -> List[ResourceDeclaration]:
        return [declaration for declaration in self if declaration.kind == kind]

    def __contains__(self, logical_name: object) -> bool:
        return isinstance(logical_name, str) and self._lookup(logical_name) is not None

    def __iter__(self) -> Iterator[ResourceDeclaration]:
        yield from self._committed.values()
        for stage in self._stages:
            yield from stage.values()

    def __len__(self) -> int:
        return len(self._committed) + sum(len(stage) for stage in self._stages)

    def to_dict(self) -> Dict[str, Any]:
        return {"scope": self.scope, "declarations": [declaration.to_dict() for declaration in self]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, indent=2)


def tag_list(tags: Optional[Mapping[str, str]]) -> List[Dict[str, str]]:
    """Render tags as a key-sorted ``[{Key, Value}]`` list."""
    return [{"Key": str(key), "Value": str(value)} for key, value in sorted((tags or {}).items())]
