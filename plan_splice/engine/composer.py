"""Composition pass: walk a plan and splice every fragment reference."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from plan_splice.engine.builder import TreeBuilder
from plan_splice.engine.tree import TreeNode
from plan_splice.errors import CyclicIncludeError
from plan_splice.types import ElementKind

if TYPE_CHECKING:
    from pathlib import Path

    from plan_splice.compiler.loader import PlanLoader
    from plan_splice.engine.controller import ReplacementController
    from plan_splice.types import RawTree

logger = logging.getLogger(__name__)


@dataclass
class CompositionResult:
    tree: TreeNode
    spliced: int = 0
    reports: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return not self.reports

    def to_dict(self) -> dict:
        return {"spliced": self.spliced, "reports": list(self.reports), "outline": self.tree.outline()}


class Composer:
    """Resolves fragment references in a plan tree.

    ``execution=True`` marks a genuine run: a modular reference whose node path
    matches nothing raises SelectionNotFoundError instead of being reported.
    """

    def __init__(self, loader: PlanLoader | None = None):
        self.loader = loader

    def compose_file(self, path: str, *, execution: bool = False) -> CompositionResult:
        if self.loader is None:
            raise RuntimeError("Composer has no loader")
        raw = self.loader.load(path)
        return self.compose_raw(raw, execution=execution)

    def compose_raw(self, raw: RawTree, *, execution: bool = False) -> CompositionResult:
        return self.compose(TreeBuilder().build(raw), execution=execution, source=raw.source)

    def compose(self, root: TreeNode, *, execution: bool = False, source: Path | None = None) -> CompositionResult:
        composed = root.clone()
        result = CompositionResult(tree=composed)
        chain: list[str] = []
        if source is not None:
            chain.append(str(source.resolve()))
        self._compose_children(composed, composed, chain, result, execution)
        logger.info("Composition finished: %d reference(s) spliced, %d report(s)", result.spliced, len(result.reports))
        return result

    def _compose_children(
        self,
        node: TreeNode,
        context: TreeNode,
        chain: list[str],
        result: CompositionResult,
        execution: bool,
    ) -> None:
        for index, child in enumerate(list(node.children)):
            if child.kind is ElementKind.FRAGMENT_REFERENCE and child.enabled:
                spliced = self._splice(child, context, chain, result, execution)
                node.children[index] = spliced
                spliced.parent = node
                continue
            self._compose_children(child, context, chain, result, execution)

    def _splice(
        self,
        node: TreeNode,
        context: TreeNode,
        chain: list[str],
        result: CompositionResult,
        execution: bool,
    ) -> TreeNode:
        controller: ReplacementController = node.element
        clone = controller.clone()
        clone.resolve(context, execution=execution)
        holder = TreeNode(clone)

        key = clone.fragment_key
        if key is not None and key in chain:
            error = CyclicIncludeError(key, chain)
            logger.warning('Fragment reference "%s": %s', clone.name, error)
            result.reports.append(f'"{clone.name}": {error}')
            return holder

        replacement = clone.get_replacement_subtree()
        if replacement is None:
            if clone.last_error is not None:
                result.reports.append(f'"{clone.name}": {clone.last_error}')
            else:
                logger.debug('Fragment reference "%s" has nothing to splice yet', clone.name)
            return holder

        if replacement.kind is ElementKind.PLAN:
            for child in list(replacement.children):
                holder.add(child)
        else:
            holder.add(replacement)
        result.spliced += 1

        nested_chain = [*chain, key] if key is not None else chain
        self._compose_children(holder, context, nested_chain, result, execution)
        return holder
