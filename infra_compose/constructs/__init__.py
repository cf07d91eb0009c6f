"""Composers for the higher-level infrastructure intents."""

from .domain_zone import DomainZone, DomainZoneComposer
from .queue import DeadLetterQueueDeclarer, QueueBinder, QueueBinding, QueueDeclarer, QueueHandle
from .versioned_function import FunctionPlan, VersionedFunction, VersionedFunctionComposer

__all__ = [
    "DomainZone",
    "DomainZoneComposer",
    "DeadLetterQueueDeclarer",
    "QueueBinder",
    "QueueBinding",
    "QueueDeclarer",
    "QueueHandle",
    "FunctionPlan",
    "VersionedFunction",
    "VersionedFunctionComposer",
]
