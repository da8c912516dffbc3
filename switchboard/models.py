"""Data models for interaction handling.

Command schemas and interaction traces are pydantic models so they
serialize straight to the JSON Discord expects and to log records.
Inbound events are plain dataclasses because they carry the live
``discord.Interaction`` handlers reply through.

Schema models:
    CommandOptionType, CommandChoice, CommandOption, CommandSchema

Event models:
    InteractionKind, InteractionOption, InteractionEvent

Trace models:
    TraceOption, TracedInteraction, InteractionTrace
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field


class CommandOptionType(IntEnum):
    """Discord application command option types."""
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


class CommandChoice(BaseModel):
    """A fixed choice offered for a command option."""

    name: str = Field(..., min_length=1, max_length=100)
    value: Union[str, int, float]


class CommandOption(BaseModel):
    """A parameter of a slash command (or a nested sub-command)."""

    type: CommandOptionType
    name: str = Field(..., pattern=r"^[-_\w]{1,32}$")
    description: str = Field(..., min_length=1, max_length=100)
    required: bool = False
    autocomplete: bool = False
    choices: List[CommandChoice] = Field(default_factory=list)
    options: List["CommandOption"] = Field(default_factory=list)


class CommandSchema(BaseModel):
    """Externally visible schema of a slash command.

    ``default_member_permissions`` and ``dm_permission`` are left unset
    here and filled from configured defaults by ``Command.build()``.
    """

    name: str = Field(..., pattern=r"^[-_a-z0-9]{1,32}$")
    description: str = Field(..., min_length=1, max_length=100)
    options: List[CommandOption] = Field(default_factory=list)
    default_member_permissions: Optional[int] = None
    dm_permission: Optional[bool] = None
    nsfw: bool = False

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON payload for Discord's bulk-overwrite endpoint."""
        payload = self.model_dump(mode="json", exclude_none=True)
        payload["type"] = 1  # CHAT_INPUT
        # Discord expects the permission bitfield as a string
        if self.default_member_permissions is not None:
            payload["default_member_permissions"] = str(self.default_member_permissions)
        return payload


class InteractionKind(str, Enum):
    """Sub-kinds of inbound interactions the dispatcher routes."""
    COMMAND = "command"
    AUTOCOMPLETE = "autocomplete"
    COMPONENT = "component"
    MODAL_SUBMIT = "modal_submit"


@dataclass(frozen=True)
class InteractionOption:
    """A single option value submitted with a command or autocomplete."""

    name: str
    type: int
    value: Any = None
    focused: bool = False


@dataclass(frozen=True)
class InteractionEvent:
    """A transport-neutral inbound interaction.

    Handlers receive this object unmodified. ``raw`` holds the
    transport's own interaction object (``discord.Interaction`` in
    production) for replying.
    """

    kind: InteractionKind
    name: str
    actor_id: str
    channel_id: Optional[str] = None
    scope_id: Optional[str] = None
    command_id: Optional[str] = None
    options: Tuple[InteractionOption, ...] = field(default_factory=tuple)
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def is_command(self) -> bool:
        return self.kind in (InteractionKind.COMMAND, InteractionKind.AUTOCOMPLETE)

    def get_option(self, name: str, default: Any = None) -> Any:
        """Return the submitted value of option ``name``."""
        for option in self.options:
            if option.name == name:
                return option.value
        return default

    @property
    def focused_value(self) -> str:
        """Partial input of the focused option (autocomplete only)."""
        for option in self.options:
            if option.focused:
                return "" if option.value is None else str(option.value)
        return ""


class TraceOption(BaseModel):
    """An option as recorded in an interaction trace."""

    name: str
    type: str
    value: Union[str, int, float, bool, None] = None


class TracedInteraction(BaseModel):
    name: str
    options: List[TraceOption] = Field(default_factory=list)


class InteractionTrace(BaseModel):
    """Diagnostic trace of an interaction whose handler failed.

    Reconstructible from any event kind: commands and autocompletes
    record their options, components and modals record only the
    custom id.
    """

    executor_id: str
    channel_id: Optional[str] = None
    guild_id: Optional[str] = None
    interaction: TracedInteraction

    @classmethod
    def from_event(cls, event: InteractionEvent) -> "InteractionTrace":
        options: List[TraceOption] = []
        if event.is_command:
            options = [
                TraceOption(
                    name=option.name,
                    type=_option_type_label(option.type),
                    value=_trace_value(option.value),
                )
                for option in event.options
            ]
        return cls(
            executor_id=event.actor_id,
            channel_id=event.channel_id,
            guild_id=event.scope_id,
            interaction=TracedInteraction(name=event.name, options=options),
        )


def _option_type_label(option_type: int) -> str:
    try:
        return CommandOptionType(option_type).name
    except ValueError:
        return str(option_type)


def _trace_value(value: Any) -> Union[str, int, float, bool, None]:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)
