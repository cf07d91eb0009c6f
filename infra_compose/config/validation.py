"""Cross-field validation run before any declaration is emitted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from infra_compose.config.types import CompositionDefaults, ExistingQueueConfig, FunctionConfig, NewQueueConfig, SqsFunctionConfig
from infra_compose.core.artifacts import LanguageFamily, infer_language_family, split_handler
from infra_compose.core.errors import ConfigurationError
from infra_compose.logging_utils import get_logger

logger = get_logger(__name__)

BATCH_WINDOW_REQUIRED = (
    "Maximum batch window in seconds must be greater than 0 if maximum batch size is greater than 10"
)
QUEUE_SOURCES_EXCLUSIVE = "dataSqsQueue and sqsQueue cannot be used simultaneously."


@dataclass(frozen=True)
class ExistingQueueTarget:
    """Bind to a queue that already exists, looked up by name."""

    config: ExistingQueueConfig

    @property
    def name(self) -> str:
        return self.config.name


@dataclass(frozen=True)
class NewQueueTarget:
    """Declare a new queue (with dead-letter queue) for the function."""

    config: NewQueueConfig


QueueTarget = Union[ExistingQueueTarget, NewQueueTarget]


def _reject(message: str, **context: object) -> None:
    logger.warning("Configuration rejected", extra={"reason": message, **context})
    raise ConfigurationError(message)


def validate_function_config(config: FunctionConfig) -> LanguageFamily:
    """Check runtime/handler agreement and return the inferred language family."""
    family = infer_language_family(config.runtime)
    split_handler(config.handler, family)
    return family


def validate_event_source_mapping(config: SqsFunctionConfig) -> None:
    """Apply the SQS event source mapping rules documented by AWS Lambda."""
    if config.batch_size and config.batch_size > 10 and (not config.batch_window or config.batch_window < 1):
        _reject(BATCH_WINDOW_REQUIRED, function=config.name, batch_size=config.batch_size)

    if config.config_from_preexisting_sqs_queue is not None and config.config_for_new_sqs_queue is not None:
        _reject(QUEUE_SOURCES_EXCLUSIVE, function=config.name)


def resolve_queue_target(config: SqsFunctionConfig) -> QueueTarget:
    """Resolve the existing/new queue choice once; a new queue is the default."""
    validate_event_source_mapping(config)
    if config.config_from_preexisting_sqs_queue is not None:
        return ExistingQueueTarget(config=config.config_from_preexisting_sqs_queue)
    return NewQueueTarget(config=config.config_for_new_sqs_queue or NewQueueConfig())


def validate_queue_visibility(target: QueueTarget, function_timeout: int) -> None:
    """A new queue must hide in-flight messages for at least the function timeout."""
    if not isinstance(target, NewQueueTarget):
        return
    visibility = target.config.visibility_timeout_seconds
    if visibility is not None and visibility < function_timeout:
        _reject(
            f"Queue visibility timeout ({visibility}s) must be at least the function timeout ({function_timeout}s)"
        )


def resolve_timeout(config: FunctionConfig, defaults: CompositionDefaults) -> int:
    return config.timeout if config.timeout is not None else defaults.timeout
