"""Convert a raw loaded plan into the addressable TreeNode model."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from plan_splice.engine.tree import TreeNode
from plan_splice.types import Element, ElementKind, ResolutionState

if TYPE_CHECKING:
    from plan_splice.engine.controller import ReplacementController
    from plan_splice.types import RawNode, RawTree

logger = logging.getLogger(__name__)


class TreeBuilder:
    """Builds one TreeNode tree from a RawTree.

    ``context_tree`` is the already-resolved tree of the controller that owns
    this build, if it has one. Nested fragment references found during the
    walk resolve against a Plan-root wrapper around a clone of it.
    """

    def __init__(self, context_tree: TreeNode | None = None, owner: ReplacementController | None = None):
        self.context_tree = context_tree
        self.owner = owner
        self._root_assigned = False

    def build(self, raw: RawTree) -> TreeNode:
        self._root_assigned = False
        root = TreeNode(Element.plan_root())
        self._walk(raw.nodes, root, root)
        if root.is_empty():
            logger.debug("Built empty plan tree from %s", raw.source or "<text>")
        return root

    def _walk(self, raw_nodes: list[RawNode], current: TreeNode, root: TreeNode) -> None:
        for raw in raw_nodes:
            item = raw.element
            if item.kind is ElementKind.PLAN:
                if not self._root_assigned:
                    # Fresh payload: the raw plan element never ends up in the built tree
                    root.element = Element.plan_root(
                        item.name,
                        functional_mode=item.functional_mode,
                        serialized=item.serialized,
                    )
                    self._root_assigned = True
                self._walk(raw.children, root, root)
                continue

            if item.kind is ElementKind.FRAGMENT_REFERENCE:
                # References keep their identity: owner checks and nested resolution state
                self._resolve_nested(item)
                payload = item
            else:
                payload = item.copy()

            node = current.add(TreeNode(payload))
            self._walk(raw.children, node, root)

    def _resolve_nested(self, reference) -> None:
        if self.context_tree is None or reference is self.owner:
            return
        if reference.state is ResolutionState.RESOLVED:
            return
        wrapper = TreeNode(Element.plan_root())
        wrapper.add(self.context_tree.clone())
        reference.resolve(wrapper)
        logger.debug("Nested reference %r resolved against outer tree: %s", reference.name, reference.state.value)
