"""Processors that rewrite client metadata per resource before forwarding data."""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .actions import ActionsRunner, ClientContext
from .config import ActionConfig

_LOGGER = logging.getLogger(__name__)

START_EVENT = "Start processing"
END_EVENT = "End processing"

Consumer = Callable[[Optional[ClientContext], list], None]


@dataclass
class ResourceData:
    """One resource entry of a batch: its attributes and the records it holds."""

    attributes: dict[str, Any] = field(default_factory=dict)
    records: list[Any] = field(default_factory=list)


def build_actions_runner(actions: Iterable[ActionConfig]) -> ActionsRunner:
    """Build a runner holding one action per configuration entry, in order."""
    runner = ActionsRunner()
    for action in actions:
        runner.add_action(action)
    return runner


def _extension_ids(host: Any) -> Iterable[Any]:
    if host is None:
        return ()
    get_extensions = getattr(host, "get_extensions", None)
    if callable(get_extensions):
        return get_extensions()
    return host


class ContextProcessor:
    """Common lifecycle and per-resource dispatch for the context processors."""

    capabilities: Any = None

    def __init__(
        self,
        actions_runner: ActionsRunner,
        *,
        logger: logging.Logger | None = None,
        event_attributes: Mapping[str, str] | None = None,
    ) -> None:
        self.logger = logger if logger is not None else _LOGGER
        self.actions_runner = actions_runner
        self.event_attributes: dict[str, str] = dict(event_attributes or {})
        self._stopped: threading.Event | None = None

    @property
    def running(self) -> bool:
        """True between start and shutdown."""
        return self._stopped is not None and not self._stopped.is_set()

    def start(self, host: Any = None) -> None:
        """Start the processor and log the extensions the host offers."""
        self._stopped = threading.Event()
        for extension in _extension_ids(host):
            self.logger.info("Extension %s", extension)

    def shutdown(self) -> None:
        """Stop the processor; it must have been started."""
        if self._stopped is None:
            raise RuntimeError("processor was not started")
        self._stopped.set()

    def _event(self, name: str) -> None:
        self.logger.debug("%s %s", name, self.event_attributes)

    def _consume(
        self,
        ctx: ClientContext | None,
        resources: Iterable[ResourceData],
        next_consumer: Consumer,
    ) -> None:
        self._event(START_EVENT)
        try:
            for resource in resources:
                new_ctx = self.actions_runner.apply(ctx, resource.attributes)
                next_consumer(new_ctx, [copy.deepcopy(resource)])
        finally:
            self._event(END_EVENT)


class _ForwardingProcessor(ContextProcessor):
    def __init__(
        self,
        next_consumer: Consumer,
        actions: Iterable[ActionConfig],
        *,
        logger: logging.Logger | None = None,
        event_attributes: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            build_actions_runner(actions),
            logger=logger,
            event_attributes=event_attributes,
        )
        self.next_consumer = next_consumer


class ContextTracesProcessor(_ForwardingProcessor):
    """Forwards each trace resource separately with its rewritten context."""

    def consume_traces(self, ctx: ClientContext | None, resources: Iterable[ResourceData]) -> None:
        self._consume(ctx, resources, self.next_consumer)


class ContextLogsProcessor(_ForwardingProcessor):
    """Forwards each log resource separately with its rewritten context."""

    def consume_logs(self, ctx: ClientContext | None, resources: Iterable[ResourceData]) -> None:
        self._consume(ctx, resources, self.next_consumer)


class ContextMetricsProcessor(_ForwardingProcessor):
    """Forwards each metric resource separately with its rewritten context."""

    def consume_metrics(self, ctx: ClientContext | None, resources: Iterable[ResourceData]) -> None:
        self._consume(ctx, resources, self.next_consumer)