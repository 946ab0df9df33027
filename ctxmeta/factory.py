"""Factory creating context processors for traces, logs and metrics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .config import Config
from .processors import (
    ContextLogsProcessor,
    ContextMetricsProcessor,
    ContextProcessor,
    ContextTracesProcessor,
)

COMPONENT_TYPE = "context"
STABILITY_ALPHA = "alpha"


@dataclass(frozen=True)
class Capabilities:
    """What a consumer does to the data it receives."""

    mutates_data: bool = False


PROCESSOR_CAPABILITIES = Capabilities(mutates_data=True)


@dataclass(frozen=True)
class ProcessorSettings:
    """Identity and logger given to a processor when it is created."""

    id: str = COMPONENT_TYPE
    logger: logging.Logger | None = None


def create_default_config() -> Config:
    """Return an empty configuration."""
    return Config()


@dataclass(frozen=True)
class Factory:
    """Creates context processors for each signal."""

    component_type: str = COMPONENT_TYPE
    traces_stability: str = STABILITY_ALPHA
    logs_stability: str = STABILITY_ALPHA
    metrics_stability: str = STABILITY_ALPHA

    def create_default_config(self) -> Config:
        return create_default_config()

    def _create(
        self,
        processor_class: type[ContextProcessor],
        settings: ProcessorSettings,
        config: Any,
        next_consumer: Any,
    ) -> Any:
        if not isinstance(config, Config):
            raise TypeError(f"expected Config, got {type(config).__name__}")
        processor = processor_class(
            next_consumer,
            config.actions,
            logger=settings.logger,
            event_attributes={"processor": settings.id},
        )
        processor.capabilities = PROCESSOR_CAPABILITIES
        return processor

    def create_traces_processor(
        self, settings: ProcessorSettings, config: Config, next_consumer: Any
    ) -> ContextTracesProcessor:
        return self._create(ContextTracesProcessor, settings, config, next_consumer)

    def create_logs_processor(
        self, settings: ProcessorSettings, config: Config, next_consumer: Any
    ) -> ContextLogsProcessor:
        return self._create(ContextLogsProcessor, settings, config, next_consumer)

    def create_metrics_processor(
        self, settings: ProcessorSettings, config: Config, next_consumer: Any
    ) -> ContextMetricsProcessor:
        return self._create(ContextMetricsProcessor, settings, config, next_consumer)


def new_factory() -> Factory:
    """Return the factory for the context processor."""
    return Factory()