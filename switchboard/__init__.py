"""Handler registry and dispatch runtime for Discord bots.

Commands, components and event listeners are loaded from handler
directories at startup, commands are published to Discord per guild
and globally, and inbound interactions are routed to exactly one
handler.
"""

__version__ = "1.0.0"

from .exceptions import (
    ConfigurationError,
    ExecutionError,
    LoadError,
    NotFoundError,
    PublishError,
    RegistryError,
    SwitchboardError,
)
from .handler_base import Command, Component, EventListener
from .models import (
    CommandChoice,
    CommandOption,
    CommandOptionType,
    CommandSchema,
    InteractionEvent,
    InteractionKind,
    InteractionOption,
)

__all__ = [
    # Handler bases
    "Command",
    "Component",
    "EventListener",
    # Models
    "CommandChoice",
    "CommandOption",
    "CommandOptionType",
    "CommandSchema",
    "InteractionEvent",
    "InteractionKind",
    "InteractionOption",
    # Errors
    "ConfigurationError",
    "ExecutionError",
    "LoadError",
    "NotFoundError",
    "PublishError",
    "RegistryError",
    "SwitchboardError",
]
