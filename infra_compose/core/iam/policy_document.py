"""Structured least-privilege permission statements and documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from infra_compose.core.declarations import AttributeReference
from infra_compose.core.errors import ConfigurationError
from infra_compose.core.iam import utils as iam_utils

ResourceIdentifier = Union[str, AttributeReference]


class Effect(str, Enum):
    ALLOW = "Allow"
    DENY = "Deny"


@dataclass(frozen=True)
class TrustPrincipal:
    """Principal allowed to act in a statement (e.g. a service that assumes a role)."""

    identifiers: Tuple[str, ...]
    type: str = "Service"

    def __post_init__(self) -> None:
        identifiers = iam_utils.normalized(self.identifiers)
        if not identifiers:
            raise ConfigurationError("Trust principal requires at least one identifier")
        object.__setattr__(self, "identifiers", identifiers)


def _ordered_unique(values: Sequence[Any]) -> Tuple[Any, ...]:
    result: List[Any] = []
    for value in values:
        if value not in result:
            result.append(value)
    return tuple(result)


_MAPPING_KEYS = frozenset({"effect", "actions", "resources", "condition", "sid"})


def _identifiers(value: Any, label: str) -> Tuple[Any, ...]:
    """Accept one identifier or a list of them; a bare string is never split."""
    if value is None:
        return ()
    if isinstance(value, (str, AttributeReference)):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(value)
    raise ConfigurationError(f"Statement {label} must be a string or a list of strings, got {type(value).__name__}")


@dataclass(frozen=True)
class PolicyStatement:
    """Single permission statement; actions and resources keep their input order."""

    actions: Tuple[str, ...]
    resources: Tuple[ResourceIdentifier, ...] = ()
    effect: Effect = Effect.ALLOW
    principals: Tuple[TrustPrincipal, ...] = ()
    sid: Optional[str] = None
    condition: Optional[Mapping[str, Any]] = field(default=None, hash=False)

    def __post_init__(self) -> None:
        actions = _ordered_unique(iam_utils.normalized(_identifiers(self.actions, "actions")))
        if not actions:
            raise ConfigurationError("Policy statement requires at least one action")
        resources = _ordered_unique(
            [
                r if isinstance(r, AttributeReference) else str(r).strip()
                for r in _identifiers(self.resources, "resources")
                if r
            ]
        )
        if not resources and not self.principals:
            raise ConfigurationError(f"Policy statement for {list(actions)} requires at least one resource")
        object.__setattr__(self, "actions", actions)
        object.__setattr__(self, "resources", resources)
        object.__setattr__(self, "principals", tuple(self.principals))
        object.__setattr__(self, "effect", Effect(self.effect))
        if self.condition is not None:
            if not isinstance(self.condition, Mapping) or not all(
                isinstance(values, Mapping) for values in self.condition.values()
            ):
                raise ConfigurationError("Statement condition must map each operator to a mapping of keys and values")
            object.__setattr__(self, "condition", {str(op): dict(values) for op, values in self.condition.items()})

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "PolicyStatement":
        """Build a statement from ``effect``/``actions``/``resources``/``condition``/``sid`` keys."""
        unknown = sorted(set(raw) - _MAPPING_KEYS)
        if unknown:
            raise ConfigurationError(f"Unsupported statement keys: {unknown}")
        raw_effect = raw.get("effect", Effect.ALLOW)
        try:
            effect = raw_effect if isinstance(raw_effect, Effect) else Effect(str(raw_effect).capitalize())
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported statement effect: {raw.get('effect')!r}") from exc
        return cls(
            actions=_identifiers(raw.get("actions"), "actions"),
            resources=_identifiers(raw.get("resources"), "resources"),
            effect=effect,
            sid=raw.get("sid"),
            condition=raw.get("condition"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"Effect": self.effect.value, "Action": list(self.actions)}
        if self.sid:
            payload["Sid"] = self.sid
        if self.principals:
            grouped: Dict[str, List[str]] = {}
            for principal in self.principals:
                grouped.setdefault(principal.type, []).extend(principal.identifiers)
            payload["Principal"] = grouped
        if self.resources:
            payload["Resource"] = list(self.resources)
        if self.condition:
            payload["Condition"] = {operator: dict(values) for operator, values in self.condition.items()}
        return payload


@dataclass(frozen=True)
class PolicyDocument:
    statements: Tuple[PolicyStatement, ...]
    version: str = iam_utils.POLICY_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {"Version": self.version, "Statement": [statement.to_dict() for statement in self.statements]}


def network_interface_statement() -> PolicyStatement:
    return PolicyStatement(actions=iam_utils.NETWORK_INTERFACE_ACTIONS, resources=("*",))


def log_write_statement() -> PolicyStatement:
    return PolicyStatement(actions=iam_utils.LOG_WRITE_ACTIONS, resources=(iam_utils.LOG_RESOURCE_ARN,))


def assume_role_document(principals: Sequence[TrustPrincipal]) -> PolicyDocument:
    """Trust document letting ``principals`` assume a role."""
    return PolicyDocument(statements=(PolicyStatement(actions=("sts:AssumeRole",), principals=tuple(principals)),))


@dataclass(frozen=True)
class PolicyDocumentBuilder:
    """Merge a fixed baseline with caller statements into one document.

    Statements are never merged or deduplicated across each other; the output
    is baseline, then caller statements in input order, then the
    network-interface statement when the function is placed in a VPC.
    """

    baseline: Tuple[PolicyStatement, ...] = field(default_factory=tuple)

    @classmethod
    def for_function(cls) -> "PolicyDocumentBuilder":
        return cls(baseline=(log_write_statement(),))

    def build(self, statements: Sequence[PolicyStatement] = (), *, vpc_enabled: bool = False) -> PolicyDocument:
        merged = [*self.baseline, *statements]
        if vpc_enabled:
            merged.append(network_interface_statement())
        if not merged:
            raise ConfigurationError("Policy document must contain at least one statement")
        return PolicyDocument(statements=tuple(merged))
