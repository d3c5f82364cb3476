"""Shared fixtures for plan-splice tests."""
from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from plan_splice.config import Settings
from plan_splice.engine.controller import ReplacementController
from plan_splice.engine.resolver import resolve_path
from plan_splice.store.cache import FragmentCache
from plan_splice.types import SelectionMode
from plan_splice.workspace import Workspace

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plan_splice.compiler.loader import PlanLoader
    from plan_splice.engine.composer import CompositionResult
    from plan_splice.engine.tree import TreeNode

PLANS_DIR = Path(__file__).parent / ".splice" / "plans"


class PlanWorkspace:
    """Test harness for loading and composing plans in an isolated project.

    Provides a clean temp project directory per test with its own .splice/
    directory and fragment cache. Fixture plans from tests/.splice/plans are
    copied to the project root, which is also the loader's base_dir.
    """

    def __init__(
        self,
        *plan_files: str,
        include_prefix: str = "",
        modular_prefix: str = "",
        cache: FragmentCache | None = None,
    ):
        self.tmp = Path(tempfile.mkdtemp())
        self.splice_dir = self.tmp / ".splice"
        self.splice_dir.mkdir()
        (self.splice_dir / "plugins").mkdir()

        for plan_file in plan_files:
            shutil.copy2(PLANS_DIR / plan_file, self.tmp / plan_file)

        self.cache = cache if cache is not None else FragmentCache()
        self.settings = Settings(
            base_dir=self.tmp,
            include_prefix=include_prefix,
            modular_prefix=modular_prefix,
            plugins_dir=self.splice_dir / "plugins",
        )
        self.workspace = Workspace(self.settings, cache=self.cache)

    @property
    def loader(self) -> PlanLoader:
        return self.workspace.loader

    def path(self, filename: str) -> Path:
        return self.tmp / filename

    def write_plan(self, filename: str, content: str) -> Path:
        """Write (or overwrite) a plan file in the project root."""
        dst = self.tmp / filename
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_text(content, encoding="utf-8")
        return dst

    def install_plugin(self, filename: str, code: str) -> None:
        """Write an element-type plugin into .splice/plugins/."""
        (self.splice_dir / "plugins" / filename).write_text(code, encoding="utf-8")

    def reload_plugins(self) -> None:
        """Recreate the loader so plugins installed since setup are registered."""
        self.workspace = Workspace(self.settings, cache=self.cache)

    def build(self, filename: str) -> TreeNode:
        tree, _ = self.workspace.build(filename)
        return tree

    def compose(self, filename: str, *, execution: bool = False) -> CompositionResult:
        tree, source = self.workspace.build(filename)
        return self.workspace.composer().compose(tree, execution=execution, source=source)

    def reference(
        self,
        include_path: str,
        node_path: Sequence[str] | None = None,
        *,
        name: str = "Reference",
        mode: SelectionMode = SelectionMode.PATH_SELECTED,
        enabled: bool = True,
    ) -> ReplacementController:
        """A fragment reference bound to this project's loader and cache."""
        return ReplacementController(
            name=name,
            include_path=include_path,
            mode=mode,
            node_path=node_path,
            enabled=enabled,
            loader=self.loader,
            cache=self.cache,
        )

    def find(self, root: TreeNode, *names: str) -> TreeNode:
        node = resolve_path(root, names)
        assert node is not None, f"no node at {' > '.join(names)}"
        return node

    def close(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@pytest.fixture
def workspace_factory():
    """Factory fixture that creates PlanWorkspace instances and cleans up after test."""
    created: list[PlanWorkspace] = []

    def _make(*plan_files: str, **kwargs) -> PlanWorkspace:
        ws = PlanWorkspace(*plan_files, **kwargs)
        created.append(ws)
        return ws

    yield _make

    for ws in created:
        ws.close()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove SPLICE_* overrides inherited from the developer's shell."""
    for name in ("SPLICE_BASE_DIR", "SPLICE_INCLUDE_PREFIX", "SPLICE_MODULAR_PREFIX", "SPLICE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


# ─── Plugin code templates for tests ───

ELEMENT_PLUGIN = """\
from plan_splice.engine.element_registry import element_type

@element_type("{type_name}", kind="{kind}")
def {func}():
    return "{description}"
"""

BROKEN_PLUGIN = """\
raise RuntimeError("plugin exploded")
"""
