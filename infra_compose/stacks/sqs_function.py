"""Queue-triggered versioned function composed from one configuration object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from infra_compose.config.types import CompositionDefaults, SqsFunctionConfig, parse_config
from infra_compose.config.validation import resolve_timeout
from infra_compose.constructs.queue import QueueBinder, QueueBinding, QueueDeclarer, QueueHandle
from infra_compose.constructs.versioned_function import VersionedFunction, VersionedFunctionComposer
from infra_compose.core.artifacts import ArtifactProvider
from infra_compose.core.declarations import AttributeReference, DeclarationSink


@dataclass(frozen=True)
class SqsTriggeredFunction:
    function: VersionedFunction
    binding: QueueBinding

    @property
    def alias_arn(self) -> AttributeReference:
        return self.function.alias_arn

    @property
    def role_arn(self) -> AttributeReference:
        return self.function.role_arn

    @property
    def queue_arn(self) -> AttributeReference:
        return self.binding.queue_arn

    @property
    def new_queue(self) -> Optional[QueueHandle]:
        return self.binding.new_queue


class SqsTriggeredFunctionComposer:
    """Validate everything up front, then compose the function and bind its queue.

    Either the whole graph lands in the sink or nothing does.
    """

    def __init__(
        self,
        sink: DeclarationSink,
        *,
        artifact_provider: Optional[ArtifactProvider] = None,
        queue_declarer: Optional[QueueDeclarer] = None,
        defaults: Optional[CompositionDefaults] = None,
    ) -> None:
        self._sink = sink
        self._functions = VersionedFunctionComposer(sink, artifact_provider, defaults)
        self._queues = QueueBinder(sink, queue_declarer, defaults)

    def compose(self, config: Union[SqsFunctionConfig, Mapping[str, Any]]) -> SqsTriggeredFunction:
        parsed = parse_config(SqsFunctionConfig, config)
        target = self._queues.prepare(parsed, resolve_timeout(parsed, self._functions.defaults))
        plan = self._functions.plan(parsed)

        with self._sink.transaction():
            function = self._functions.compose_plan(plan)
            binding = self._queues.bind(function, parsed, target)
        return SqsTriggeredFunction(function=function, binding=binding)
