"""Addressable tree of plan elements.

Parents own their children. The ``parent`` pointer is a non-owning
back-reference used only to compute paths to the root.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from plan_splice.types import Element, ElementKind


@dataclass(eq=False)
class TreeNode:
    element: Element
    children: list[TreeNode] = field(default_factory=list)
    parent: TreeNode | None = field(default=None, repr=False)

    def __post_init__(self):
        for child in self.children:
            child.parent = self

    @property
    def name(self) -> str:
        return self.element.name

    @property
    def kind(self) -> ElementKind:
        return self.element.kind

    @property
    def enabled(self) -> bool:
        return self.element.enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self.element.enabled = value

    def add(self, child: TreeNode) -> TreeNode:
        child.parent = self
        self.children.append(child)
        return child

    def is_empty(self) -> bool:
        return not self.children

    # ─── Addressing ───

    def path_names(self) -> tuple[str, ...]:
        """Names from (excluding) the root down to this node."""
        names: list[str] = []
        node: TreeNode | None = self
        while node is not None and node.parent is not None:
            names.append(node.name)
            node = node.parent
        return tuple(reversed(names))

    def index_path(self) -> tuple[int, ...]:
        indices: list[int] = []
        node: TreeNode | None = self
        while node is not None and node.parent is not None:
            siblings = node.parent.children
            indices.append(next(i for i, s in enumerate(siblings) if s is node))
            node = node.parent
        return tuple(reversed(indices))

    def node_at(self, indices: tuple[int, ...]) -> TreeNode | None:
        node = self
        for i in indices:
            if i >= len(node.children):
                return None
            node = node.children[i]
        return node

    def root(self) -> TreeNode:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def walk(self) -> Iterator[TreeNode]:
        """Depth-first, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    # ─── Copying ───

    def clone(self) -> TreeNode:
        """Deep copy of this subtree; the copy's root has no parent."""
        copied = TreeNode(self.element.copy())
        for child in self.children:
            copied.add(child.clone())
        return copied

    def signature(self) -> tuple:
        """Structural value used to compare trees by name, enabled flag and shape."""
        return (self.name, self.enabled, tuple(c.signature() for c in self.children))

    def outline(self, indent: str = "  ") -> str:
        lines: list[str] = []
        self._outline(lines, 0, indent)
        return "\n".join(lines)

    def _outline(self, lines: list[str], depth: int, indent: str) -> None:
        flag = "" if self.enabled else " (disabled)"
        label = self.name or "<unnamed>"
        lines.append(f"{indent * depth}{label} [{self.element.type_name}]{flag}")
        for child in self.children:
            child._outline(lines, depth + 1, indent)
