"""Handler discovery and registration.

One loader algorithm serves every handler category. A category names
the base class a unit must be an instance of, the source its units
come from, and the registry they are inserted into.

Key classes:
    DirectorySource: Imports handler modules from a directory.
    StaticSource: Enumerates a fixed list of handler classes/instances.
    HandlerCategory: Capability check + source + storage for a category.
    HandlerLoader: Runs the load algorithm for a category.
"""

import importlib.util
import inspect
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, Iterator, List, Tuple, Type, Union

import structlog

from .exceptions import LoadError
from .handler_base import EventListener, Handler
from .registry import HandlerRegistry, ListenerRegistry
from .utils import pluralize

logger = structlog.get_logger("switchboard.loader")

# Parent package name for dynamically imported handler modules
_MODULE_NAMESPACE = "switchboard_handlers"


class DirectorySource:
    """Handler units discovered from ``*.py`` files in a directory.

    Each module contributes one instance of every concrete ``Handler``
    subclass it defines. Files whose name starts with ``_`` are ignored.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def description(self) -> str:
        return str(self.path)

    def exists(self) -> bool:
        return self.path.is_dir()

    def units(self) -> Iterator[Tuple[str, Any]]:
        namespace = re.sub(r"\W", "_", self.path.name) or "handlers"
        for module_file in sorted(self.path.glob("*.py")):
            if module_file.name.startswith("_"):
                continue
            module = self._import(f"{_MODULE_NAMESPACE}.{namespace}.{module_file.stem}", module_file)
            handler_classes = _handler_classes(module)
            if not handler_classes:
                logger.warning("handler_module_empty", file=module_file.name)
                continue
            for handler_cls in handler_classes:
                yield f"{module_file.name}:{handler_cls.__name__}", handler_cls()

    @staticmethod
    def _import(module_name: str, module_file: Path) -> ModuleType:
        spec = importlib.util.spec_from_file_location(module_name, module_file)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot import handler module {module_file}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception:
            sys.modules.pop(module_name, None)
            raise
        return module


class StaticSource:
    """Handler units from a fixed list of classes or instances.

    Classes are instantiated with no arguments when enumerated.
    """

    def __init__(self, units: Iterable[Union[Type[Any], Any]], description: str = "static"):
        self._units = list(units)
        self.description = description

    def exists(self) -> bool:
        return True

    def units(self) -> Iterator[Tuple[str, Any]]:
        for unit in self._units:
            if isinstance(unit, type):
                yield unit.__name__, unit()
            else:
                yield type(unit).__name__, unit


def _handler_classes(module: ModuleType) -> List[Type[Handler]]:
    """Concrete Handler subclasses defined in ``module`` itself."""
    return [
        attr
        for attr in module.__dict__.values()
        if isinstance(attr, type)
        and issubclass(attr, Handler)
        and attr.__module__ == module.__name__
        and not inspect.isabstract(attr)
    ]


@dataclass
class HandlerCategory:
    """One category of handlers and where it loads from and into.

    Attributes:
        name: Category label used in logs ("command", "component", ...).
        base: Units must be instances of this class to be registered.
        source: Where units are enumerated from.
        registry: Where valid units are stored.
    """

    name: str
    base: Type[Handler]
    source: Union[DirectorySource, StaticSource]
    registry: Union[HandlerRegistry, ListenerRegistry]

    def accepts(self, unit: Any) -> bool:
        return isinstance(unit, self.base)


class HandlerLoader:
    """Populates registries from handler sources."""

    def load(self, category: HandlerCategory) -> int:
        """Load every valid handler of ``category`` into its registry.

        Returns:
            Number of handlers registered. Zero when the source does
            not exist.

        Raises:
            LoadError: Enumerating, importing, instantiating or
                inserting a unit failed. Handlers registered before
                the failure stay registered.
        """
        source = category.source
        if not source.exists():
            logger.info(
                "handler_source_missing",
                category=category.name,
                source=source.description,
                msg=f"Skipping {category.name} loading: source not found",
            )
            return 0

        logger.info("handlers_loading", category=category.name, source=source.description)

        count = 0
        try:
            for unit_name, unit in source.units():
                if not category.accepts(unit):
                    logger.warning(
                        "handler_skipped",
                        category=category.name,
                        unit=unit_name,
                        reason=f"not an instance of {category.base.__name__}",
                    )
                    continue
                self._register(category, unit)
                count += 1
        except Exception as e:
            raise LoadError(
                f"Failed to load {pluralize(2, category.name)}",
                category=category.name,
                source=source.description,
            ) from e

        logger.info(
            "handlers_loaded",
            category=category.name,
            count=count,
            msg=f"Loaded {count} {pluralize(count, category.name)}",
        )
        return count

    @staticmethod
    def _register(category: HandlerCategory, handler: Handler) -> None:
        registry = category.registry
        extra = {}
        if isinstance(handler, EventListener):
            extra["mode"] = "ONCE" if handler.once else "ON"

        if handler.scope_ids:
            for scope_id in handler.scope_ids:
                registry.insert_scoped(scope_id, handler)
                logger.info(
                    "handler_registered",
                    category=category.name,
                    identity=handler.identity,
                    scope=f"GUILD: {scope_id}",
                    **extra,
                )
        else:
            registry.insert_global(handler)
            logger.info(
                "handler_registered",
                category=category.name,
                identity=handler.identity,
                scope="GLOBAL",
                **extra,
            )
