"""Typed configuration contracts for composition intents using Pydantic v2.

Field names are snake_case; every model also accepts the camelCase spelling
(``logRetention``, ``configForNewSqsQueue``, ...) used by JSON/YAML callers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, NotRequired, Optional, Required, Type, TypedDict, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from infra_compose.core.errors import ConfigurationError
from infra_compose.core.iam.policy_document import PolicyStatement

# Retention periods CloudWatch Logs accepts, in days.
LOG_RETENTION_DAYS = (1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731, 1096, 1827, 2192, 2557, 2922, 3288, 3653)

_DNS_NAME = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)(\.(?!-)[a-z0-9-]{1,63}(?<!-))+$")


@dataclass(frozen=True)
class CompositionDefaults:
    """Documented fallbacks applied when a caller leaves an option unset."""

    timeout: int = 5
    log_retention_days: int = 14
    alias_name: str = "DEPLOYED"
    log_group_prefix: str = "/function-logs"
    max_receive_count: int = 3
    delegation_ttl: int = 86400

    @classmethod
    def from_environment(cls, config: Mapping[str, Any]) -> "CompositionDefaults":
        """Overlay ``function_timeout`` / ``log_retention_days`` from an environment config."""
        defaults = cls()
        overrides: Dict[str, Any] = {}
        if config.get("function_timeout") is not None:
            overrides["timeout"] = int(config["function_timeout"])
        if config.get("log_retention_days") is not None:
            overrides["log_retention_days"] = int(config["log_retention_days"])
        if config.get("log_group_prefix"):
            overrides["log_group_prefix"] = str(config["log_group_prefix"]).rstrip("/")
        return replace(defaults, **overrides)


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        arbitrary_types_allowed=True,
    )


class VpcConfig(_ConfigModel):
    subnet_ids: List[str] = Field(min_length=1)
    security_group_ids: List[str] = Field(default_factory=list)

    def to_attributes(self) -> Dict[str, List[str]]:
        return {"SubnetIds": list(self.subnet_ids), "SecurityGroupIds": list(self.security_group_ids)}


class CodeSource(_ConfigModel):
    """Pre-built artifact stored in S3."""

    bucket: str = Field(min_length=3)
    key: str = Field(min_length=1)
    sha256: str = Field(min_length=1)


class FunctionConfig(_ConfigModel):
    name: str = Field(min_length=1, max_length=50, pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
    runtime: str
    handler: str
    description: Optional[str] = None
    timeout: Optional[int] = Field(default=None, ge=1, le=900)
    log_retention: Optional[int] = None
    environment_vars: Dict[str, str] = Field(default_factory=dict)
    vpc_config: Optional[VpcConfig] = None
    # Holds PolicyStatement instances; mappings are converted by the validator below.
    execution_policy_statements: List[Any] = Field(default_factory=list)
    code_source: Optional[CodeSource] = None
    code_bucket: Optional[str] = None
    publish_versioning: bool = True
    uses_code_deploy: bool = False
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator("execution_policy_statements", mode="before")
    @classmethod
    def _coerce_statements(cls, v: Any) -> List[PolicyStatement]:
        if v is None:
            return []
        return [item if isinstance(item, PolicyStatement) else PolicyStatement.from_mapping(item) for item in v]

    @field_validator("log_retention")
    @classmethod
    def _check_retention(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in LOG_RETENTION_DAYS:
            raise ValueError(f"log retention must be one of {LOG_RETENTION_DAYS}")
        return v


class ExistingQueueConfig(_ConfigModel):
    name: str = Field(min_length=1, max_length=80)


class NewQueueConfig(_ConfigModel):
    message_retention_seconds: Optional[int] = Field(default=None, ge=60, le=1209600)
    max_receive_count: Optional[int] = Field(default=None, ge=1, le=1000)
    max_message_size: Optional[int] = Field(default=None, ge=1024, le=262144)
    delay_seconds: Optional[int] = Field(default=None, ge=0, le=900)
    visibility_timeout_seconds: Optional[int] = Field(default=None, ge=0, le=43200)


class SqsFunctionConfig(FunctionConfig):
    """Versioned function triggered by an SQS queue."""

    config_from_preexisting_sqs_queue: Optional[ExistingQueueConfig] = None
    config_for_new_sqs_queue: Optional[NewQueueConfig] = None
    batch_size: Optional[int] = Field(default=None, ge=1, le=10000)
    batch_window: Optional[int] = Field(default=None, ge=0, le=300)


class DomainZoneConfig(_ConfigModel):
    domain: str = Field(min_length=1, max_length=253)
    root_domain: str = Field(min_length=1, max_length=253)
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator("domain", "root_domain")
    @classmethod
    def _check_dns_name(cls, v: str) -> str:
        name = v.strip().rstrip(".").lower()
        if not _DNS_NAME.fullmatch(name):
            raise ValueError(f"'{v}' is not a DNS name of dot-separated labels (letters, digits, hyphens)")
        return name


ModelT = TypeVar("ModelT", bound=BaseModel)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def parse_config(model: Type[ModelT], data: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """Validate ``data`` into ``model``, surfacing failures as ConfigurationError."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = {name: getattr(data, name) for name in data.model_fields_set}
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid {model.__name__}: {_describe(exc)}") from exc


class EnvironmentConfig(TypedDict, total=False):
    """Strongly-typed environment configuration contract."""

    region: Required[str]
    account_id: NotRequired[Optional[str]]

    function_timeout: NotRequired[int]
    log_retention_days: NotRequired[int]
    log_group_prefix: NotRequired[str]

    root_domain: NotRequired[str]
    code_bucket: NotRequired[str]

    tags: NotRequired[Dict[str, str]]
