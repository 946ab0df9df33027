"""Configuration of the context processor: actions applied to client metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ConfigError(ValueError):
    """Raised when the processor configuration is invalid."""


MISSING_ACTIONS = "Missing actions configuration"
MISSING_KEY = "Missing action key"
MISSING_SOURCE = "Missing action source, must be 'from_attribute' or 'value'"
DELETE_WITH_PARAMS = "Action delete does not support 'from_attribute' and/or 'value'"


class ActionType(str, Enum):
    """The four kinds of action that can be performed on the context."""

    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass
class ActionConfig:
    """A single action: which metadata key to touch and where its value comes from."""

    key: str | None = None
    action: ActionType | str = ""
    value: str | None = None
    from_attribute: str | None = None

    def __post_init__(self) -> None:
        try:
            self.action = ActionType(self.action)
        except ValueError:
            pass


@dataclass
class Config:
    """Processor settings: the ordered list of actions."""

    actions: list[ActionConfig] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ConfigError if the configuration cannot be used."""
        if not self.actions:
            raise ConfigError(MISSING_ACTIONS)
        for action in self.actions:
            if not action.key:
                raise ConfigError(MISSING_KEY)
            if action.action != ActionType.DELETE:
                if action.from_attribute is None and action.value is None:
                    raise ConfigError(MISSING_SOURCE)
            elif action.from_attribute is not None or action.value is not None:
                raise ConfigError(DELETE_WITH_PARAMS)