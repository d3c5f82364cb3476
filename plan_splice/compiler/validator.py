"""Static analysis for plans: catch broken references before composition."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from plan_splice.compiler.loader import PlanLoader
from plan_splice.engine.resolver import render_path
from plan_splice.errors import PlanLoadError
from plan_splice.types import ElementKind

if TYPE_CHECKING:
    from plan_splice.engine.tree import TreeNode


class ValidationError:
    def __init__(self, level: str, message: str, node: str | None = None):
        self.level = level  # "error" | "warning"
        self.message = message
        self.node = node

    def __str__(self):
        prefix = f"[{self.node}] " if self.node else ""
        return f"{self.level.upper()}: {prefix}{self.message}"


def validate_plan(
    root: TreeNode,
    *,
    source: str | Path | None = None,
    loader: PlanLoader | None = None,
) -> list[ValidationError]:
    """Run all static checks on a built plan tree.

    ``loader`` locates referenced files the same way composition does; the
    self-include check is skipped without a ``source``.
    """
    errors: list[ValidationError] = []

    if root.is_empty():
        errors.append(ValidationError("error", "Plan has no elements"))
        return errors

    errors.extend(_check_references(root, source, loader or PlanLoader()))
    errors.extend(_check_duplicate_siblings(root))

    return errors


def format_errors(errors: list[ValidationError]) -> str:
    if not errors:
        return ""
    lines = []
    errs = [e for e in errors if e.level == "error"]
    warns = [e for e in errors if e.level == "warning"]
    if errs:
        lines.append(f"  {len(errs)} error(s):")
        for e in errs:
            lines.append(f"    ✗ {e}")
    if warns:
        lines.append(f"  {len(warns)} warning(s):")
        for e in warns:
            lines.append(f"    ⚠ {e}")
    return "\n".join(lines)


def _label(node: TreeNode) -> str:
    return render_path(node.path_names()) or node.name

# ─── Checks ───

def _check_references(root: TreeNode, source: str | Path | None, loader: PlanLoader) -> list[ValidationError]:
    """Every reference needs a file; modular ones need a node path; none may include its own plan."""
    errors: list[ValidationError] = []
    own_key = str(Path(source).resolve()) if source is not None else None

    for node in root.walk():
        if node.kind is not ElementKind.FRAGMENT_REFERENCE:
            continue
        element = node.element
        if not element.include_path:
            errors.append(ValidationError("error", "Fragment reference has no include path", _label(node)))
            continue

        if element.reference_kind == "modular" and not element.node_path:
            errors.append(ValidationError(
                "warning", "Modular reference has no node path (awaiting selection)", _label(node)
            ))

        if own_key is not None and _included_key(loader, element) == own_key:
            errors.append(ValidationError("error", "Fragment reference includes its own plan", _label(node)))

    return errors


def _included_key(loader: PlanLoader, element) -> str | None:
    try:
        return loader.fragment_key(element.include_path, loader.prefix_for(element.reference_kind))
    except PlanLoadError:
        # Missing files are reported when the plan is composed
        return None


def _check_duplicate_siblings(root: TreeNode) -> list[ValidationError]:
    """Node paths match the first sibling with a given name; duplicates shadow later ones."""
    errors: list[ValidationError] = []
    for node in root.walk():
        seen: set[str] = set()
        for child in node.children:
            if child.name in seen:
                errors.append(ValidationError(
                    "warning",
                    f"Duplicate sibling name '{child.name}': node paths will only reach the first one",
                    _label(node) or None,
                ))
            seen.add(child.name)
    return errors
