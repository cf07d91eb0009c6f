"""Bind an SQS queue (new or pre-existing) to a versioned function."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from infra_compose.config.types import CompositionDefaults, NewQueueConfig, SqsFunctionConfig, parse_config
from infra_compose.config.validation import (
    ExistingQueueTarget,
    NewQueueTarget,
    QueueTarget,
    resolve_queue_target,
    validate_queue_visibility,
)
from infra_compose.constructs.versioned_function import VersionedFunction
from infra_compose.core import kinds
from infra_compose.core.declarations import (
    AttributeReference,
    DeclarationMode,
    DeclarationSink,
    ResourceDeclaration,
    tag_list,
)
from infra_compose.core.iam import PolicyAttachment, PolicyDocumentBuilder, PolicyStatement, RoleBinder
from infra_compose.core.iam import utils as iam_utils
from infra_compose.logging_utils import get_logger

logger = get_logger(__name__)

DEAD_LETTER_RETENTION_SECONDS = 14 * 24 * 60 * 60


@dataclass(frozen=True)
class QueueHandle:
    """Identifier references for the queue a function consumes."""

    queue: ResourceDeclaration
    dead_letter_queue: Optional[ResourceDeclaration] = None

    @property
    def arn(self) -> AttributeReference:
        return self.queue.attr("Arn")

    @property
    def url(self) -> AttributeReference:
        return self.queue.attr("QueueUrl")

    @property
    def created(self) -> bool:
        return self.queue.mode is DeclarationMode.MANAGED


class QueueDeclarer(Protocol):
    def declare(
        self, sink: DeclarationSink, name: str, config: NewQueueConfig, tags: Mapping[str, str]
    ) -> QueueHandle:
        """Declare a new queue for ``name`` and return a handle to the primary queue."""


class DeadLetterQueueDeclarer:
    """Declare a primary queue with a redrive policy onto its own dead-letter queue."""

    def __init__(self, defaults: Optional[CompositionDefaults] = None) -> None:
        self._defaults = defaults or CompositionDefaults()

    def declare(
        self, sink: DeclarationSink, name: str, config: NewQueueConfig, tags: Mapping[str, str]
    ) -> QueueHandle:
        dead_letter_attributes: Dict[str, Any] = {
            "QueueName": f"{name}-Queue-Deadletter",
            "MessageRetentionPeriod": DEAD_LETTER_RETENTION_SECONDS,
        }
        if tags:
            dead_letter_attributes["Tags"] = tag_list(tags)
        dead_letter = sink.append(
            ResourceDeclaration(
                kind=kinds.SQS_QUEUE,
                logical_name=f"{name}-sqs-queue-deadletter",
                attributes=dead_letter_attributes,
            )
        )

        attributes: Dict[str, Any] = {
            "QueueName": f"{name}-Queue",
            "RedrivePolicy": {
                "deadLetterTargetArn": dead_letter.attr("Arn"),
                "maxReceiveCount": config.max_receive_count or self._defaults.max_receive_count,
            },
        }
        optional = {
            "MessageRetentionPeriod": config.message_retention_seconds,
            "MaximumMessageSize": config.max_message_size,
            "DelaySeconds": config.delay_seconds,
            "VisibilityTimeout": config.visibility_timeout_seconds,
        }
        attributes.update({key: value for key, value in optional.items() if value is not None})
        if tags:
            attributes["Tags"] = tag_list(tags)
        queue = sink.append(
            ResourceDeclaration(
                kind=kinds.SQS_QUEUE,
                logical_name=f"{name}-sqs-queue",
                attributes=attributes,
                depends_on=(dead_letter.logical_name,),
            )
        )
        return QueueHandle(queue=queue, dead_letter_queue=dead_letter)


@dataclass(frozen=True)
class QueueBinding:
    queue: QueueHandle
    policy_attachment: PolicyAttachment
    event_source_mapping: ResourceDeclaration

    @property
    def queue_arn(self) -> AttributeReference:
        return self.queue.arn

    @property
    def new_queue(self) -> Optional[QueueHandle]:
        return self.queue if self.queue.created else None


class QueueBinder:
    """Connect a queue to a versioned function's alias.

    The queue choice is validated before anything is declared. The consumer
    policy extends the function's existing execution role, and the event
    source mapping waits for that attachment.
    """

    def __init__(
        self,
        sink: DeclarationSink,
        queue_declarer: Optional[QueueDeclarer] = None,
        defaults: Optional[CompositionDefaults] = None,
    ) -> None:
        self._sink = sink
        self._defaults = defaults or CompositionDefaults()
        self._queues = queue_declarer or DeadLetterQueueDeclarer(self._defaults)
        self._roles = RoleBinder(sink)

    def prepare(self, config: Union[SqsFunctionConfig, Mapping[str, Any]], function_timeout: int) -> QueueTarget:
        """Validate the queue options and resolve which queue mode applies."""
        parsed = parse_config(SqsFunctionConfig, config)
        target = resolve_queue_target(parsed)
        validate_queue_visibility(target, function_timeout)
        return target

    def bind(
        self,
        function: VersionedFunction,
        config: Union[SqsFunctionConfig, Mapping[str, Any]],
        target: Optional[QueueTarget] = None,
    ) -> QueueBinding:
        parsed = parse_config(SqsFunctionConfig, config)
        if target is None:
            target = self.prepare(parsed, function.plan.timeout)

        with self._sink.transaction():
            queue = self._resolve_queue(parsed, target)
            document = PolicyDocumentBuilder().build(
                [PolicyStatement(actions=iam_utils.QUEUE_CONSUMER_ACTIONS, resources=(queue.arn,))]
            )
            attachment = self._roles.attach(
                function.role,
                logical_prefix=f"{parsed.name}-sqs",
                policy_name=f"{parsed.name}-LambdaSQSPolicy",
                policy=document,
            )
            mapping = self._declare_event_source_mapping(parsed, function, queue, attachment)

        logger.info(
            "Bound queue to function",
            extra={
                "function": function.plan.function_name,
                "queue_mode": "existing" if isinstance(target, ExistingQueueTarget) else "new",
                "batch_size": parsed.batch_size,
                "batch_window": parsed.batch_window,
            },
        )
        return QueueBinding(queue=queue, policy_attachment=attachment, event_source_mapping=mapping)

    def _resolve_queue(self, config: SqsFunctionConfig, target: QueueTarget) -> QueueHandle:
        if isinstance(target, NewQueueTarget):
            return self._queues.declare(self._sink, config.name, target.config, config.tags)
        existing = self._sink.append(
            ResourceDeclaration(
                kind=kinds.SQS_QUEUE,
                logical_name=f"{config.name}-sqs-queue",
                attributes={"QueueName": target.name},
                mode=DeclarationMode.DATA,
            )
        )
        return QueueHandle(queue=existing)

    def _declare_event_source_mapping(
        self,
        config: SqsFunctionConfig,
        function: VersionedFunction,
        queue: QueueHandle,
        attachment: PolicyAttachment,
    ) -> ResourceDeclaration:
        attributes: Dict[str, Any] = {"EventSourceArn": queue.arn, "FunctionName": function.alias_arn}
        if config.batch_size is not None:
            attributes["BatchSize"] = config.batch_size
        if config.batch_window is not None:
            attributes["MaximumBatchingWindowInSeconds"] = config.batch_window
        return self._sink.append(
            ResourceDeclaration(
                kind=kinds.LAMBDA_EVENT_SOURCE_MAPPING,
                logical_name=f"{config.name}-event-source-mapping",
                attributes=attributes,
                depends_on=(attachment.attachment.logical_name, function.alias.logical_name),
            )
        )
