"""Locate nodes in a plan tree by symbolic node path."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from plan_splice.types import ElementKind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from plan_splice.engine.tree import TreeNode

PATH_SEPARATOR = " > "


def _is_guarded(node: TreeNode, guard_kind: str | None) -> bool:
    return (
        guard_kind is not None
        and node.kind is ElementKind.FRAGMENT_REFERENCE
        and node.element.reference_kind == guard_kind
    )


def resolve_path(
    root: TreeNode | None,
    path: Sequence[str] | None,
    *,
    guard_kind: str | None = None,
) -> TreeNode | None:
    """Find the node at ``path`` below ``root``, or None.

    ``path[0]`` is matched against the root's children; the root's own name is
    never compared. Duplicate sibling names resolve to the first complete match
    in depth-first, left-to-right order. References whose ``reference_kind``
    equals ``guard_kind`` are neither matched nor descended into.
    """
    if root is None or not path:
        return None
    return _traverse(root, tuple(path), 0, guard_kind)


def _traverse(node: TreeNode, path: tuple[str, ...], level: int, guard_kind: str | None) -> TreeNode | None:
    for child in node.children:
        if _is_guarded(child, guard_kind):
            continue
        if child.name != path[level]:
            continue
        if level + 1 == len(path):
            return child
        found = _traverse(child, path, level + 1, guard_kind)
        if found is not None:
            return found
    return None


def find_node(root: TreeNode, predicate: Callable[[TreeNode], bool]) -> TreeNode | None:
    for node in root.walk():
        if predicate(node):
            return node
    return None


def render_path(path: Sequence[str]) -> str:
    return PATH_SEPARATOR.join(path)

# ─── Selectable targets ───

@dataclass
class Target:
    path: tuple[str, ...]
    kind: ElementKind
    selectable: bool
    enabled: bool = True

    def __str__(self) -> str:
        marks = []
        if not self.selectable:
            marks.append("not selectable")
        if not self.enabled:
            marks.append("disabled")
        suffix = f" ({', '.join(marks)})" if marks else ""
        return f"{render_path(self.path)} [{self.kind.value}]{suffix}"


_LISTED_KINDS = (ElementKind.TEST_FRAGMENT, ElementKind.THREAD_GROUP)


def _is_listed(node: TreeNode, level: int) -> bool:
    if node.kind in _LISTED_KINDS:
        return True
    # Fragment references are never listed, so a selection cannot recurse
    return node.kind is ElementKind.CONTROLLER and level > 0


def list_targets(root: TreeNode) -> list[Target]:
    """Nodes a modular reference may point at, in document order.

    Only fragments and thread groups are listed at the top level; controllers
    are listed below them. Thread groups are shown for orientation but cannot
    be selected.
    """
    targets: list[Target] = []
    _collect_targets(root, 0, targets)
    return targets


def _collect_targets(node: TreeNode, level: int, out: list[Target]) -> None:
    for child in node.children:
        if child.kind is ElementKind.PLAN:
            _collect_targets(child, level, out)
            continue
        if not _is_listed(child, level):
            continue
        out.append(Target(
            path=child.path_names(),
            kind=child.kind,
            selectable=child.kind is not ElementKind.THREAD_GROUP,
            enabled=child.enabled,
        ))
        _collect_targets(child, level + 1, out)


def has_controller(root: TreeNode) -> bool:
    """True when the tree holds at least one plain controller."""
    return any(node.kind is ElementKind.CONTROLLER for node in root.walk())


def parse_node_path(value) -> tuple[str, ...] | None:
    """Accept a list of names or a ``" > "``-joined string."""
    if value is None:
        return None
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(PATH_SEPARATOR.strip())]
        return tuple(p for p in parts if p)
    if isinstance(value, (list, tuple)):
        return tuple(str(p) for p in value)
    raise ValueError(f"Invalid node path: {value!r}")
