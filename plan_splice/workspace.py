"""Wires settings, the shared fragment cache and the plan loader for one session."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from plan_splice.compiler.loader import PlanLoader
from plan_splice.config import Settings, load_settings
from plan_splice.engine.builder import TreeBuilder
from plan_splice.engine.composer import Composer
from plan_splice.store.cache import FragmentCache

if TYPE_CHECKING:
    from plan_splice.engine.tree import TreeNode


@dataclass
class Workspace:
    settings: Settings
    cache: FragmentCache = field(default_factory=FragmentCache)
    loader: PlanLoader | None = None

    def __post_init__(self):
        if self.loader is None:
            self.loader = PlanLoader.from_settings(self.settings, cache=self.cache)

    @classmethod
    def open(cls, cwd: str | Path | None = None) -> Workspace:
        return cls(load_settings(cwd))

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.settings.log_level, logging.WARNING),
            format="%(levelname)s %(name)s: %(message)s",
        )

    def composer(self) -> Composer:
        return Composer(self.loader)

    def build(self, path: str | Path) -> tuple[TreeNode, Path | None]:
        """Load ``path`` (relative to the current directory or base_dir) into a tree."""
        raw = self.loader.load(self._plan_path(path))
        return TreeBuilder().build(raw), raw.source

    def _plan_path(self, path: str | Path) -> Path:
        given = Path(path)
        if given.is_absolute() or not given.exists():
            return given
        return given.resolve()
