"""MCP Server exposing splice_* tools for plan composition."""
from __future__ import annotations

import json
import os

from mcp.server.fastmcp import FastMCP

from plan_splice.compiler import validate_plan
from plan_splice.engine.resolver import has_controller, list_targets
from plan_splice.errors import PlanSpliceError
from plan_splice.workspace import Workspace

mcp = FastMCP("plan-splice")


def _get_workspace() -> Workspace:
    return Workspace.open(os.getcwd())


@mcp.tool()
def splice_compose(plan: str, run: bool = False) -> str:
    """Compose a plan: splice every fragment reference and return the outline and problems."""
    workspace = _get_workspace()
    try:
        tree, source = workspace.build(plan)
        result = workspace.composer().compose(tree, execution=run, source=source)
        return json.dumps(result.to_dict(), ensure_ascii=False, indent=2)
    except PlanSpliceError as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def splice_targets(plan: str) -> str:
    """List node paths in an external plan that a modular include can select."""
    workspace = _get_workspace()
    try:
        tree, _ = workspace.build(plan)
    except PlanSpliceError as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)
    targets = [
        {
            "path": list(t.path),
            "kind": t.kind.value,
            "selectable": t.selectable,
            "enabled": t.enabled,
        }
        for t in list_targets(tree)
    ]
    return json.dumps({
        "plan": tree.name,
        "targets": targets,
        "has_controller": has_controller(tree),
    }, ensure_ascii=False, indent=2)


@mcp.tool()
def splice_validate(plan: str) -> str:
    """Run static checks on a plan without resolving its references."""
    workspace = _get_workspace()
    try:
        tree, source = workspace.build(plan)
    except PlanSpliceError as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)
    errors = validate_plan(tree, source=source, loader=workspace.loader)
    return json.dumps({
        "valid": not any(e.level == "error" for e in errors),
        "problems": [{"level": e.level, "message": e.message, "node": e.node} for e in errors],
    }, ensure_ascii=False, indent=2)


def run_server():
    mcp.run(transport="stdio")
