"""splice targets <external-plan>: list node paths a modular include can select."""
from __future__ import annotations

import sys

from plan_splice.engine.resolver import has_controller, list_targets
from plan_splice.errors import PlanLoadError
from plan_splice.workspace import Workspace


def cmd_targets(plan_path: str, cwd: str):
    workspace = Workspace.open(cwd)
    workspace.configure_logging()

    try:
        tree, _ = workspace.build(plan_path)
    except PlanLoadError as e:
        print(f"✗ Load error: {e}", file=sys.stderr)
        sys.exit(1)

    targets = list_targets(tree)
    if not targets:
        print(f'Plan "{tree.name}" has no selectable targets.')
        return

    print(f'Targets in "{tree.name}":')
    for target in targets:
        print(f"  {target}")

    if not has_controller(tree):
        print()
        print("⚠ No controller found: only fragments can be included from this plan.")
