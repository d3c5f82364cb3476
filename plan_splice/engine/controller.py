"""Fragment reference controller: resolves an external plan and produces splice content.

The composition pass drives every reference through the same protocol:
  1. clone()                      → resolves the live instance, deep-copies its state
  2. resolve(context, execution)  → locates the selection against the live plan
  3. get_replacement_subtree()    → fresh, enabled copy to splice in (None = nothing)
"""
from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING

from plan_splice.engine.builder import TreeBuilder
from plan_splice.engine.resolver import render_path, resolve_path
from plan_splice.errors import PlanLoadError, SelectionNotFoundError
from plan_splice.types import Element, ElementKind, ResolutionState, SelectionMode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plan_splice.compiler.loader import PlanLoader
    from plan_splice.engine.tree import TreeNode
    from plan_splice.errors import PlanSpliceError
    from plan_splice.store.cache import FragmentCache

logger = logging.getLogger(__name__)

INCLUDE_PATH = "include_path"
NODE_PATH = "node_path"

_DEFAULT_TYPE_NAMES = {
    SelectionMode.WHOLE_TREE: "import",
    SelectionMode.PATH_SELECTED: "include",
}


class ReplacementController(Element):
    """A plan element that is replaced, at composition time, by external content.

    ``mode`` picks what gets spliced: the whole external tree (import) or the
    single node found at ``node_path`` (modular include).
    """

    def __init__(
        self,
        name: str = "",
        include_path: str = "",
        mode: SelectionMode = SelectionMode.PATH_SELECTED,
        node_path: Sequence[str] | None = None,
        *,
        enabled: bool = True,
        type_name: str | None = None,
        properties: dict | None = None,
        loader: PlanLoader | None = None,
        cache: FragmentCache | None = None,
    ):
        super().__init__(
            name=name,
            type_name=type_name or _DEFAULT_TYPE_NAMES[mode],
            kind=ElementKind.FRAGMENT_REFERENCE,
            enabled=enabled,
            properties=dict(properties or {}),
        )
        self.mode = mode
        self.loader = loader
        self.cache = cache
        self.properties[INCLUDE_PATH] = include_path
        self.properties[NODE_PATH] = list(node_path) if node_path else None

        self.state = ResolutionState.UNRESOLVED
        self.last_error: PlanSpliceError | None = None
        self._key: str | None = None
        self._tree: TreeNode | None = None
        self._selected: TreeNode | None = None

    # ─── Configuration ───

    @property
    def reference_kind(self) -> str:
        return self.mode.value

    @property
    def include_path(self) -> str:
        return self.properties.get(INCLUDE_PATH) or ""

    def set_include_path(self, path: str) -> None:
        """Point at another file; drops this instance's tree and selection, not the cache entry."""
        self.properties[INCLUDE_PATH] = path
        self._clear_resolution()

    @property
    def node_path(self) -> tuple[str, ...] | None:
        value = self.properties.get(NODE_PATH)
        return tuple(value) if value else None

    @property
    def fragment_key(self) -> str | None:
        return self._key

    @property
    def tree(self) -> TreeNode | None:
        return self._tree

    @property
    def selected_node(self) -> TreeNode | None:
        if self._selected is None:
            self.resolve()
        return self._selected

    def set_selected_node(self, node: TreeNode | None) -> None:
        """Record a user selection and persist its node path."""
        self._selected = node
        self.properties[NODE_PATH] = list(node.path_names()) if node is not None else None
        if node is not None:
            self.state = ResolutionState.RESOLVED
            self.last_error = None
        elif self.state is ResolutionState.RESOLVED:
            self.state = ResolutionState.UNRESOLVED

    def reset(self) -> None:
        """Forget everything resolved, including the node path and the shared cache entry."""
        key = self._key or self._locate_key()
        self._clear_resolution()
        self.properties[NODE_PATH] = None
        if key and self.cache is not None:
            self.cache.invalidate(key)

    def _clear_resolution(self) -> None:
        self._key = None
        self._tree = None
        self._selected = None
        self.last_error = None
        self.state = ResolutionState.UNRESOLVED

    # ─── Resolution ───

    def resolve(
        self,
        context: TreeNode | None = None,
        *,
        execution: bool = False,
        quiet: bool = False,
    ) -> ResolutionState:
        """Load (or fetch from cache) the external tree and locate the selection.

        ``context`` is the live plan being composed; a modular path is looked up
        there first, then in this reference's own external tree. During an
        execution pass a path that matches nothing raises SelectionNotFoundError;
        otherwise the miss is logged, at DEBUG when ``quiet``.
        """
        if self.state is ResolutionState.RESOLVED:
            return self.state
        if self.state is ResolutionState.FAILED and isinstance(self.last_error, PlanLoadError):
            return self.state

        self.state = ResolutionState.RESOLVING

        if self._tree is None:
            if not self.include_path:
                self.state = ResolutionState.UNRESOLVED
                return self.state
            try:
                self._tree = self._load_tree()
            except PlanLoadError as e:
                return self._fail(e)

        if self.mode is SelectionMode.WHOLE_TREE:
            return self._resolved()

        if self._selected is None:
            node_path = self.node_path
            if not node_path:
                # Awaiting the first user selection
                self.state = ResolutionState.UNRESOLVED
                return self.state

            selected = resolve_path(context, node_path, guard_kind=self.reference_kind)
            if selected is None:
                selected = resolve_path(self._tree, node_path, guard_kind=self.reference_kind)
            if selected is None:
                error = SelectionNotFoundError(self.name, node_path)
                if execution:
                    self.state = ResolutionState.FAILED
                    self.last_error = error
                    logger.error("%s", error)
                    raise error
                return self._fail(error, quiet=quiet)
            self._selected = selected

        return self._resolved()

    def reload(self) -> ResolutionState:
        """Rebuild the external tree from disk, replacing the cached copy.

        The previously held tree becomes the context nested references
        resolve against while the new tree is built. If the rebuild fails,
        the previous tree, selection and cache entry are kept.
        """
        if not self.include_path:
            self._clear_resolution()
            return self.state

        previous = self._tree
        previous_key = self._key
        self.state = ResolutionState.RESOLVING
        try:
            tree = self._load_tree(context_tree=previous, fresh=True)
        except PlanLoadError as e:
            return self._fail(e)

        if previous_key and previous_key != self._key and self.cache is not None:
            self.cache.invalidate(previous_key)
        self._tree = tree
        self._selected = None
        self.last_error = None
        return self.resolve()

    def _load_tree(self, context_tree: TreeNode | None = None, *, fresh: bool = False) -> TreeNode:
        """Fetch the external tree from the cache or build it; ``fresh`` skips the cache lookup."""
        loader = self._require_loader()
        prefix = loader.prefix_for(self.reference_kind)
        key = loader.fragment_key(self.include_path, prefix)

        tree = self.cache.get(key) if self.cache is not None and not fresh else None
        if tree is None:
            raw = loader.load(key)
            tree = TreeBuilder(context_tree=context_tree, owner=self).build(raw)
            logger.debug("Built external tree for %r from %s", self.name, key)
            if self.cache is not None:
                if fresh:
                    self.cache.invalidate(key)
                tree = self.cache.put(key, tree)

        self._key = key
        return tree

    def _locate_key(self) -> str | None:
        if not self.include_path or self.loader is None:
            return None
        try:
            return self.loader.fragment_key(self.include_path, self.loader.prefix_for(self.reference_kind))
        except PlanLoadError:
            logger.debug("No file to invalidate for %r (%s)", self.name, self.include_path)
            return None

    def _require_loader(self) -> PlanLoader:
        if self.loader is None:
            from plan_splice.compiler.loader import PlanLoader
            self.loader = PlanLoader(cache=self.cache)
        return self.loader

    def _resolved(self) -> ResolutionState:
        self.state = ResolutionState.RESOLVED
        self.last_error = None
        return self.state

    def _fail(self, error: PlanSpliceError, *, quiet: bool = False) -> ResolutionState:
        self.state = ResolutionState.FAILED
        self.last_error = error
        if isinstance(error, SelectionNotFoundError):
            logger.log(
                logging.DEBUG if quiet else logging.WARNING,
                'Fragment reference "%s" has no selection: "%s" not found in %s',
                self.name, render_path(error.node_path), self.include_path,
            )
        else:
            logger.warning(
                'Fragment reference "%s" cannot include "%s": %s',
                self.name, self.include_path, error,
            )
        return self.state

    # ─── Replacement ───

    def get_replacement_subtree(self) -> TreeNode | None:
        """Fresh enabled copy of what should be spliced, or None when not resolved."""
        if self.state is not ResolutionState.RESOLVED:
            return None
        source = self._tree if self.mode is SelectionMode.WHOLE_TREE else self._selected
        if source is None:
            return None
        replacement = source.clone()
        # Only the top node is forced on; disabled descendants stay disabled
        replacement.enabled = True
        return replacement

    # ─── Copying ───

    def _copy_config(self) -> ReplacementController:
        return ReplacementController(
            name=self.name,
            include_path=self.include_path,
            mode=self.mode,
            node_path=self.node_path,
            enabled=self.enabled,
            type_name=self.type_name,
            properties=copy.deepcopy(self.properties),
            loader=self.loader,
            cache=self.cache,
        )

    def copy(self) -> ReplacementController:
        """Payload copy used when cloning a tree that contains this reference.

        Resolved state is shared, not copied: it is either a cached tree or
        a clone-private tree, and neither is mutated through this API.
        """
        twin = self._copy_config()
        twin._key = self._key
        twin._tree = self._tree
        twin._selected = self._selected
        twin.state = self.state
        twin.last_error = self.last_error
        return twin

    def clone(self) -> ReplacementController:
        """Resolve this instance, then return a copy with its own private tree.

        A selection missing here may still be found in the composition context,
        so that miss is only logged at DEBUG.
        """
        self.resolve(quiet=True)
        twin = self._copy_config()
        twin._key = self._key
        twin.state = self.state
        twin.last_error = self.last_error
        if self._tree is not None:
            twin._tree = self._tree.clone()
        if self._selected is not None:
            if twin._tree is not None and self._selected.root() is self._tree:
                twin._selected = twin._tree.node_at(self._selected.index_path())
            else:
                # Selection came from a composition context, not our own tree
                twin._selected = self._selected.clone()
        return twin
