"""Configuration models, defaults and validation."""

from .types import (
    CodeSource,
    CompositionDefaults,
    DomainZoneConfig,
    ExistingQueueConfig,
    FunctionConfig,
    NewQueueConfig,
    SqsFunctionConfig,
    VpcConfig,
    parse_config,
)

__all__ = [
    "CodeSource",
    "CompositionDefaults",
    "DomainZoneConfig",
    "ExistingQueueConfig",
    "FunctionConfig",
    "NewQueueConfig",
    "SqsFunctionConfig",
    "VpcConfig",
    "parse_config",
]
