"""Logging configuration for switchboard.

Provides subsystem-level log file routing, secret sanitization,
and structlog + stdlib integration.

Subsystem hierarchy (stdlib dotted names, structlog wraps them):
    root                → ConsoleHandler (terminal)
      └─ switchboard    → RotatingFileHandler → switchboard.log (combined)
           ├─ switchboard.loader    → RFH → loader.log
           ├─ switchboard.publisher → RFH → publisher.log
           ├─ switchboard.dispatch  → RFH → dispatch.log
           └─ switchboard.transport → RFH → transport.log
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict

import structlog

# One RotatingFileHandler per subsystem
SUBSYSTEMS = ("loader", "publisher", "dispatch", "transport")

# stdlib logger name prefix for hierarchy-based propagation
LOGGER_PREFIX = "switchboard"

# ---------------------------------------------------------------------------
# Secret sanitization
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    # Discord bot tokens: base64 user id, timestamp, HMAC
    re.compile(r"[MNO][a-zA-Z0-9_-]{23,25}\.[a-zA-Z0-9_-]{6}\.[a-zA-Z0-9_-]{27,38}"),
    # Authorization header values
    re.compile(r"Bot\s+[a-zA-Z0-9_.-]{20,}"),
    re.compile(r"Bearer\s+[a-zA-Z0-9_./-]{20,}"),
    # Interaction tokens embedded in webhook URLs
    re.compile(r"(?<=/webhooks/)\d+/[a-zA-Z0-9_-]{20,}"),
]

_REDACTED = "***REDACTED***"


def _scrub_value(value: str) -> str:
    """Scrub secrets from a single string value."""
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs bot and interaction tokens.

    Walks all string values in the event dict (one level into lists,
    tuples and dicts) and replaces matches with a redacted placeholder.
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

_DEFAULT_MAX_FILE_SIZE_MB = 10
_DEFAULT_BACKUP_COUNT = 5


def _level(name: Any, default: int) -> int:
    """Map a level name like "debug" to its logging constant."""
    if not name:
        return default
    return getattr(logging, str(name).upper(), default)


def _file_formatter() -> logging.Formatter:
    """Plain structured formatter for log files (no ANSI colors)."""
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )


def _attach_file(
    logger: logging.Logger,
    path: Path,
    level: int,
    max_bytes: int,
    backup_count: int,
    formatter: logging.Formatter,
) -> None:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _reset(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = True
    return logger


def setup_logging(config=None) -> None:
    """Route structlog events to the console and rotating log files.

    Every ``switchboard.<subsystem>`` event is written to its subsystem
    file, to the combined ``switchboard.log`` and to the console, by
    propagation up the stdlib logger hierarchy.

    Called twice during startup. Without ``config`` it installs
    defaults and leaves structlog's logger cache off, so module-level
    loggers pick up the second call, which passes the loaded Config.
    """
    if config is None:
        log_dir = Path(__file__).parent.parent / "logs"
        base_level = logging.INFO
        overrides: Dict[str, Any] = {}
        max_bytes = _DEFAULT_MAX_FILE_SIZE_MB * 1024 * 1024
        backup_count = _DEFAULT_BACKUP_COUNT
    else:
        log_dir = config.log_dir
        base_level = _level(config.logging_level, logging.INFO)
        overrides = config.logging_subsystem_levels or {}
        max_bytes = config.logging_max_file_size_mb * 1024 * 1024
        backup_count = config.logging_backup_count

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        write_files = True
    except OSError as exc:
        # Logging problems must not stop the bot
        print(
            f"WARNING: Cannot create log directory {log_dir}: {exc}. "
            "Logging to the console only.",
            file=sys.stderr,
        )
        write_files = False

    formatter = _file_formatter()

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(base_level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root.addHandler(console)

    # Gateway heartbeats flood INFO
    logging.getLogger("discord").setLevel(max(base_level, logging.WARNING))

    combined = _reset(LOGGER_PREFIX, logging.DEBUG)
    if write_files:
        _attach_file(
            combined, log_dir / f"{LOGGER_PREFIX}.log",
            base_level, max_bytes, backup_count, formatter,
        )

    for subsystem in SUBSYSTEMS:
        level = _level(overrides.get(subsystem), base_level)
        sub_logger = _reset(f"{LOGGER_PREFIX}.{subsystem}", level)
        if write_files:
            _attach_file(
                sub_logger, log_dir / f"{subsystem}.log",
                level, max_bytes, backup_count, formatter,
            )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )
