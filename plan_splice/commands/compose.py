"""splice compose <plan> [--run]: splice every fragment reference and print the result."""
from __future__ import annotations

import sys

from plan_splice.errors import PlanLoadError, SelectionNotFoundError
from plan_splice.workspace import Workspace


def cmd_compose(plan_path: str, cwd: str, *, execution: bool = False):
    workspace = Workspace.open(cwd)
    workspace.configure_logging()

    try:
        tree, source = workspace.build(plan_path)
        result = workspace.composer().compose(tree, execution=execution, source=source)
    except PlanLoadError as e:
        print(f"✗ Load error: {e}", file=sys.stderr)
        sys.exit(1)
    except SelectionNotFoundError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)

    mode = "run" if execution else "preview"
    print(f'✓ Plan "{result.tree.name}" composed for {mode} ({result.spliced} reference(s) spliced)')
    print()
    print(result.tree.outline())

    if result.reports:
        print()
        print(f"  {len(result.reports)} problem(s):")
        for line in result.reports:
            print(f"    ⚠ {line}")
