"""Actions that rewrite client metadata from resource attributes."""

from __future__ import annotations

import base64
import json
import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .config import ActionConfig, ActionType, ConfigError, MISSING_KEY


@dataclass(frozen=True)
class ClientContext:
    """Request context carrying client metadata (key -> list of values)."""

    metadata: Mapping[str, list[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {key.lower(): list(values) for key, values in self.metadata.items()}
        object.__setattr__(self, "metadata", normalized)

    def get(self, key: str) -> list[str]:
        """Return a copy of the values for key; an empty list when absent."""
        values = self.metadata.get(key)
        if not values:
            values = self.metadata.get(key.lower())
        return list(values) if values else []


def _format_float(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Mapping):
        return json.dumps(dict(value), separators=(",", ":"), sort_keys=True, default=str)
    if isinstance(value, Iterable):
        return json.dumps(list(value), separators=(",", ":"), sort_keys=True, default=str)
    return str(value)


class EventContext:
    """Working state while actions run: incoming metadata, attributes, new metadata."""

    def __init__(self, ctx: ClientContext | None = None, attrs: Mapping[str, Any] | None = None) -> None:
        self.ctx = ctx if ctx is not None else ClientContext()
        self.attrs: Mapping[str, Any] = attrs if attrs is not None else {}
        self.new_metadata: dict[str, list[str]] = {}

    def get_context_key(self, key: str) -> list[str] | None:
        """Return the values for key, preferring new metadata; None when absent."""
        if key in self.new_metadata:
            return self.new_metadata[key]
        values = self.ctx.get(key)
        return values if values else None

    def set_context_key(self, key: str, value: list[str]) -> None:
        self.new_metadata[key] = list(value)

    def del_context_key(self, key: str) -> None:
        """Drop key from the new metadata; the incoming value becomes visible again."""
        self.new_metadata.pop(key, None)

    def get_attr(self, key: str, default: str) -> str:
        """Return the attribute as a string, or default when it is absent."""
        if key not in self.attrs:
            return default
        return _as_string(self.attrs[key])

    def to_context(self) -> ClientContext:
        """Build the outgoing context holding only the new metadata."""
        return ClientContext(metadata=self.new_metadata)


@dataclass
class Action(ABC):
    """An operation on one metadata key."""

    key: str
    value: str = ""
    from_attr: str = ""

    def _resolve(self, event_context: EventContext) -> str:
        if self.from_attr:
            return event_context.get_attr(self.from_attr, self.value)
        return self.value

    @abstractmethod
    def execute(self, event_context: EventContext) -> None:
        """Apply the action to the event context."""


class InsertAction(Action):
    """Set the key only if it has no value yet; otherwise keep the current value."""

    def execute(self, event_context: EventContext) -> None:
        value = self._resolve(event_context)
        current = event_context.get_context_key(self.key)
        if current is None:
            event_context.set_context_key(self.key, [value])
        else:
            event_context.set_context_key(self.key, current)


class UpsertAction(Action):
    """Set the key, replacing any current value."""

    def execute(self, event_context: EventContext) -> None:
        event_context.set_context_key(self.key, [self._resolve(event_context)])


class UpdateAction(Action):
    """Append a value to the key, only if it already exists."""

    def execute(self, event_context: EventContext) -> None:
        value = self._resolve(event_context)
        current = event_context.get_context_key(self.key)
        if current is not None:
            event_context.set_context_key(self.key, [*current, value])


class DeleteAction(Action):
    """Remove the key from the new metadata."""

    def execute(self, event_context: EventContext) -> None:
        event_context.del_context_key(self.key)


_ACTIONS: dict[ActionType, type[Action]] = {
    ActionType.INSERT: InsertAction,
    ActionType.UPSERT: UpsertAction,
    ActionType.UPDATE: UpdateAction,
    ActionType.DELETE: DeleteAction,
}


def generate_action(config: ActionConfig) -> Action:
    """Build the action described by config."""
    try:
        action_type = ActionType(config.action)
    except ValueError:
        raise ConfigError("Unknown action type") from None
    if config.key is None:
        raise ConfigError(MISSING_KEY)
    return _ACTIONS[action_type](
        key=config.key,
        value=config.value or "",
        from_attr=config.from_attribute or "",
    )


class ActionsRunner:
    """Runs an ordered list of actions against a context."""

    def __init__(self) -> None:
        self.actions: list[Action] = []

    def add_action(self, action_config: ActionConfig) -> None:
        self.actions.append(generate_action(action_config))

    def apply(self, ctx: ClientContext | None, attrs: Mapping[str, Any]) -> ClientContext:
        """Run every action in order and return the resulting context."""
        event_context = EventContext(ctx, attrs)
        for action in self.actions:
            action.execute(event_context)
        return event_context.to_context()