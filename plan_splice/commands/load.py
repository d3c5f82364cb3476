"""splice load <plan>: parse a plan, validate it, output a Mermaid diagram."""
from __future__ import annotations

import sys

from plan_splice.compiler import format_errors, generate_mermaid, validate_plan
from plan_splice.errors import PlanLoadError
from plan_splice.workspace import Workspace


def cmd_load(plan_path: str, cwd: str):
    workspace = Workspace.open(cwd)
    workspace.configure_logging()

    try:
        tree, source = workspace.build(plan_path)
    except PlanLoadError as e:
        print(f"✗ Load error: {e}", file=sys.stderr)
        sys.exit(1)

    # Static analysis
    errors = validate_plan(tree, source=source, loader=workspace.loader)
    has_errors = any(e.level == "error" for e in errors)

    if has_errors:
        print(f'✗ Plan "{tree.name}" failed validation:')
        print(format_errors(errors))
        sys.exit(1)

    count = sum(1 for _ in tree.walk()) - 1
    print(f'✓ Plan "{tree.name}" loaded ({count} elements)')
    if errors:
        print(format_errors(errors))
    print()

    # Mermaid diagram
    print("```mermaid")
    print(generate_mermaid(tree))
    print("```")
    print()
    print("Once the plan looks correct, run: splice compose " + plan_path)
