"""Custom exception hierarchy for switchboard.

Startup errors (configuration, loading, publishing) are fatal to the
process. Dispatch errors (not found, execution) are isolated to the
single interaction that caused them.

All errors chain their cause with ``raise ... from`` and expose an
``error_type`` for log routing.
"""

import json
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from .models import InteractionEvent, InteractionTrace


class ErrorType(str, Enum):
    """Classification of errors across the bot's lifecycle."""
    UNKNOWN = "UnknownError"
    CONFIGURATION = "ConfigurationError"
    REGISTRY = "RegistryError"
    LOAD = "LoadError"
    PUBLISH = "PublishError"
    NOT_FOUND = "NotFoundError"
    EXECUTION = "InteractionExecutionError"


def ensure_error(error: Any) -> BaseException:
    """Return ``error`` as an exception instance.

    Non-exception failure values are normalized into an ``Exception``
    with a descriptive message instead of being dropped.
    """
    if isinstance(error, BaseException):
        return error

    if error is None:
        message = "An unknown error occurred - cannot parse error as it is None."
    elif isinstance(error, (dict, list, tuple)):
        try:
            message = json.dumps(error, indent=2, default=str)
        except (TypeError, ValueError):
            message = repr(error)
    else:
        message = str(error)

    return Exception(message)


class SwitchboardError(Exception):
    """Base exception for all switchboard errors.

    Attributes:
        message: Human-readable error description.
        error_type: Classification used in logs.
        module: Originating module name (e.g. "loader").
        context: Arbitrary key-value pairs for structured logging.
    """

    error_type: ErrorType = ErrorType.UNKNOWN

    def __init__(
        self,
        message: str = "",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return f"{cls}({self.message!r}, module={self.module!r})"


class ConfigurationError(SwitchboardError):
    """Invalid or missing configuration (e.g. no Discord token)."""

    error_type = ErrorType.CONFIGURATION

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(message, module=module or "config", **context)


class RegistryError(SwitchboardError):
    """A uniqueness violation, or a write after the registry was sealed."""

    error_type = ErrorType.REGISTRY

    def __init__(
        self,
        message: str = "",
        *,
        identity: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.identity = identity
        super().__init__(message, module=module or "registry", **context)


class LoadError(SwitchboardError):
    """Loading a handler category failed. Fatal at startup.

    Attributes:
        category: The handler category being loaded ("command", ...).
    """

    error_type = ErrorType.LOAD

    def __init__(
        self,
        message: str = "",
        *,
        category: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.category = category
        super().__init__(message, module=module or "loader", **context)


class PublishError(SwitchboardError):
    """Publishing commands to a scope failed.

    Attributes:
        scope_id: Guild id of the failing scope, ``None`` for global.
        failures: Per-scope errors when several scopes failed in one
            publish run. Empty for a single-scope failure.
    """

    error_type = ErrorType.PUBLISH

    def __init__(
        self,
        message: str = "",
        *,
        scope_id: Optional[str] = None,
        failures: Optional[List["PublishError"]] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.scope_id = scope_id
        self.failures = list(failures or [])
        super().__init__(message, module=module or "publisher", **context)

    @property
    def failed_scopes(self) -> List[Optional[str]]:
        """Scope ids that failed; ``None`` stands for the global scope."""
        if self.failures:
            return [failure.scope_id for failure in self.failures]
        return [self.scope_id]


class NotFoundError(SwitchboardError):
    """No handler could be resolved for an interaction.

    Attributes:
        identity: Command name or component custom id.
        reason: ``"not_registered"`` when no handler exists, or
            ``"no_autocomplete"`` when the command exists but has no
            autocomplete behaviour.
    """

    error_type = ErrorType.NOT_FOUND

    NOT_REGISTERED = "not_registered"
    NO_AUTOCOMPLETE = "no_autocomplete"

    def __init__(
        self,
        message: str = "",
        *,
        identity: Optional[str] = None,
        reason: str = NOT_REGISTERED,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.identity = identity
        self.reason = reason
        super().__init__(message, module=module or "dispatcher", **context)


class ExecutionError(SwitchboardError):
    """A handler raised while processing an interaction.

    The message embeds the interaction trace as indented JSON so a
    single log line is enough to reproduce the failing interaction.

    Attributes:
        trace: Structured trace of the originating interaction.
    """

    error_type = ErrorType.EXECUTION

    def __init__(self, event: "InteractionEvent", cause: Any) -> None:
        from .models import InteractionTrace

        self.trace: "InteractionTrace" = InteractionTrace.from_event(event)
        self.cause = ensure_error(cause)
        super().__init__(
            f'Failed to execute interaction "{self.trace.interaction.name}"\n\n'
            f"{self.trace.model_dump_json(indent=2)}",
            module="dispatcher",
        )
        self.__cause__ = self.cause

    def __str__(self) -> str:
        return self.message
