"""Generate a Mermaid flowchart from a plan tree."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

from plan_splice.types import ElementKind

if TYPE_CHECKING:
    from plan_splice.engine.tree import TreeNode

_counter = 0


def _make_id(name: str) -> str:
    global _counter
    _counter += 1
    clean = re.sub(r"[^a-zA-Z0-9_]", "_", name)
    clean = re.sub(r"_+", "_", clean).strip("_")
    return f"n{_counter}_{clean}"


def _shape(node: TreeNode, nid: str) -> str:
    label = (node.name or node.element.type_name).replace('"', "'")
    kind = node.kind
    if kind is ElementKind.PLAN:
        # Plan root → stadium
        return f'    {nid}(["{label}"])'
    if kind is ElementKind.THREAD_GROUP:
        # Thread group → parallelogram
        return f'    {nid}[/"{label}"/]'
    if kind is ElementKind.TEST_FRAGMENT:
        # Fragment → subroutine
        return f'    {nid}[["{label}"]]'
    if kind is ElementKind.FRAGMENT_REFERENCE:
        # Reference → hexagon
        return f'    {nid}{{{{"{label}"}}}}'
    if kind is ElementKind.CONTROLLER:
        return f'    {nid}["{label}"]'
    # Samplers and the rest → rounded
    return f'    {nid}("{label}")'


def generate_mermaid(root: TreeNode) -> str:
    global _counter
    _counter = 0

    nodes: list[str] = []
    edges: list[str] = []
    disabled: list[str] = []

    def visit(node: TreeNode) -> str:
        nid = _make_id(node.name or node.element.type_name)
        nodes.append(_shape(node, nid))
        if not node.enabled:
            disabled.append(nid)
        for child in node.children:
            cid = visit(child)
            if node.kind is ElementKind.FRAGMENT_REFERENCE:
                # Spliced content → dashed
                edges.append(f"    {nid} -.-> {cid}")
            else:
                edges.append(f"    {nid} --> {cid}")
        return nid

    visit(root)

    lines = ["graph TD"]
    lines.extend(nodes)
    lines.extend(edges)
    if disabled:
        lines.append("    classDef disabled stroke-dasharray: 5 5,opacity:0.5")
        lines.append(f"    class {','.join(disabled)} disabled")
    return "\n".join(lines)
