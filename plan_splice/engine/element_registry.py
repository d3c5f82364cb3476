"""Element-type registry: built-in plan element types plus plugins from .splice/plugins/."""
from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from plan_splice.errors import UnsupportedElementError
from plan_splice.types import ElementKind, SelectionMode

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

BUILTIN_TYPES: dict[str, ElementKind] = {
    "plan": ElementKind.PLAN,
    "thread_group": ElementKind.THREAD_GROUP,
    "setup_thread_group": ElementKind.THREAD_GROUP,
    "teardown_thread_group": ElementKind.THREAD_GROUP,
    "fragment": ElementKind.TEST_FRAGMENT,
    "test_fragment": ElementKind.TEST_FRAGMENT,
    **{
        name: ElementKind.CONTROLLER
        for name in (
            "simple", "loop", "if", "while", "transaction", "once_only", "throughput",
            "random", "random_order", "switch", "foreach", "interleave", "runtime",
            "critical_section", "recording",
        )
    },
    "import": ElementKind.FRAGMENT_REFERENCE,
    "include": ElementKind.FRAGMENT_REFERENCE,
    "modular_include": ElementKind.FRAGMENT_REFERENCE,
    **{
        name: ElementKind.OTHER
        for name in (
            "sampler", "http_request", "debug_sampler", "assertion", "timer", "listener",
            "config", "pre_processor", "post_processor", "extractor",
        )
    },
}

# Reference type name -> selection mode
REFERENCE_MODES: dict[str, SelectionMode] = {
    "import": SelectionMode.WHOLE_TREE,
    "include": SelectionMode.PATH_SELECTED,
    "modular_include": SelectionMode.PATH_SELECTED,
}


@dataclass
class ElementType:
    name: str
    kind: ElementKind = ElementKind.OTHER
    description: str = ""


def element_type(name: str | None = None, *, kind: ElementKind | str = ElementKind.OTHER):
    """Factory function for declaring plugin element types.

    Usage in .splice/plugins/jdbc.py::

        from plan_splice.engine.element_registry import element_type

        @element_type("jdbc_request")
        def jdbc_request():
            return "Runs a SQL statement against a configured pool"
    """
    resolved = ElementKind(kind) if isinstance(kind, str) else kind

    def decorator(fn: Callable[[], str | None]) -> ElementType:
        return ElementType(name=name or fn.__name__, kind=resolved, description=fn() or "")
    return decorator


class ElementRegistry:
    def __init__(self, types: dict[str, ElementKind] | None = None):
        self._types: dict[str, ElementKind] = dict(BUILTIN_TYPES if types is None else types)

    def register(self, type_name: str, kind: ElementKind) -> None:
        if kind is ElementKind.FRAGMENT_REFERENCE and type_name not in REFERENCE_MODES:
            raise ValueError(f"Plugins cannot declare fragment reference types: '{type_name}'")
        self._types[type_name] = kind

    def kind_of(self, type_name: str, source: str | Path | None = None) -> ElementKind:
        kind = self._types.get(type_name)
        if kind is None:
            raise UnsupportedElementError(type_name, source)
        return kind

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._types

    def load_plugins(self, plugins_dir: str | Path | None) -> list[str]:
        """Import every plugin module and register the element types it declares."""
        if plugins_dir is None:
            return []
        plugins_path = Path(plugins_dir)
        if not plugins_path.is_dir():
            return []

        registered: list[str] = []
        for py_file in sorted(plugins_path.glob("*.py")):
            try:
                spec = importlib.util.spec_from_file_location(f"splice_plugin_{py_file.stem}", py_file)
                if not spec or not spec.loader:
                    continue
                mod = importlib.util.module_from_spec(spec)
                spec.loader.exec_module(mod)

                for attr_name in dir(mod):
                    obj = getattr(mod, attr_name)
                    if isinstance(obj, ElementType):
                        self.register(obj.name, obj.kind)
                        registered.append(obj.name)
            except Exception as e:
                logger.warning("Failed to load element plugin %s: %s", py_file, e)

        if registered:
            logger.info("Registered plugin element types: %s", ", ".join(registered))
        return registered
