"""Locate and load external plan files into raw trees."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from plan_splice.compiler.parser import parse_plan
from plan_splice.engine.controller import ReplacementController
from plan_splice.engine.element_registry import ElementRegistry
from plan_splice.errors import CorruptPlanError, PlanNotFoundError

if TYPE_CHECKING:
    from plan_splice.config import Settings
    from plan_splice.store.cache import FragmentCache
    from plan_splice.types import RawTree, SelectionMode

logger = logging.getLogger(__name__)


def _is_readable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


class PlanLoader:
    """Turns a plan path into a RawTree.

    Fragment references found in a loaded plan are created bound to this
    loader and to ``cache`` so they can resolve their own external plans.
    """

    def __init__(
        self,
        base_dir: str | Path | None = None,
        *,
        registry: ElementRegistry | None = None,
        cache: FragmentCache | None = None,
        include_prefix: str = "",
        modular_prefix: str = "",
    ):
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.registry = registry or ElementRegistry()
        self.cache = cache
        self.include_prefix = include_prefix
        self.modular_prefix = modular_prefix

    @classmethod
    def from_settings(cls, settings: Settings, *, cache: FragmentCache | None = None) -> PlanLoader:
        registry = ElementRegistry()
        registry.load_plugins(settings.plugins_dir)
        return cls(
            settings.base_dir,
            registry=registry,
            cache=cache,
            include_prefix=settings.include_prefix,
            modular_prefix=settings.modular_prefix,
        )

    def prefix_for(self, reference_kind: str | None) -> str:
        return self.modular_prefix if reference_kind == "modular" else self.include_prefix

    def locate(self, path: str | Path, prefix: str = "") -> Path:
        """Find the file for ``path``: base_dir first, then ``prefix + path``."""
        given = Path(path)
        first = given if given.is_absolute() else self.base_dir / given
        if _is_readable_file(first):
            return first

        if given.is_absolute():
            raise PlanNotFoundError(f"Plan file not found: {first}", first)

        second = Path(f"{prefix}{path}".strip())
        logger.info("Plan not found at %s, trying %s", first.absolute(), second.absolute())
        if _is_readable_file(second):
            return second

        raise PlanNotFoundError(
            f"Plan file not found: tried {first.absolute()} and {second.absolute()}",
            path,
        )

    def fragment_key(self, path: str | Path, prefix: str = "") -> str:
        return str(self.locate(path, prefix).resolve())

    def load(self, path: str | Path, prefix: str = "") -> RawTree:
        file_path = self.locate(path, prefix)
        logger.info("Loading plan: %s", file_path.absolute())
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptPlanError(f"Cannot read plan {file_path}: {e}", file_path) from e
        return self.parse(content, source=file_path)

    def parse(self, content: str, *, source: Path | None = None) -> RawTree:
        return parse_plan(
            content,
            registry=self.registry,
            source=source,
            reference_factory=self._make_reference,
        )

    def _make_reference(
        self,
        *,
        name: str,
        include_path: str,
        mode: SelectionMode,
        node_path: tuple[str, ...] | None,
        enabled: bool,
        type_name: str,
        properties: dict,
    ) -> ReplacementController:
        return ReplacementController(
            name=name,
            include_path=include_path,
            mode=mode,
            node_path=node_path,
            enabled=enabled,
            type_name=type_name,
            properties=properties,
            loader=self,
            cache=self.cache,
        )
