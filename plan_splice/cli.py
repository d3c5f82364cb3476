"""Thin CLI router: dispatches to commands."""
from __future__ import annotations

import os
import sys

USAGE = """\
plan-splice: compose test plans from reusable fragments

Usage:
  splice load <plan>              Parse plan, validate, output Mermaid diagram
  splice compose <plan> [--run]   Splice every fragment reference and print the result
                                  (--run aborts when a selected target is missing)
  splice targets <plan>           List node paths a modular include can select

Internal (called by MCP clients):
  splice mcp-server               Start MCP Server
"""


def main():
    args = sys.argv[1:]
    cwd = os.getcwd()
    command = args[0] if args else None

    if command == "load":
        if len(args) < 2:
            print("Usage: splice load <plan>", file=sys.stderr)
            sys.exit(1)
        from plan_splice.commands.load import cmd_load
        cmd_load(args[1], cwd)

    elif command == "compose":
        rest = [a for a in args[1:] if a != "--run"]
        if not rest:
            print("Usage: splice compose <plan> [--run]", file=sys.stderr)
            sys.exit(1)
        from plan_splice.commands.compose import cmd_compose
        cmd_compose(rest[0], cwd, execution="--run" in args[1:])

    elif command == "targets":
        if len(args) < 2:
            print("Usage: splice targets <plan>", file=sys.stderr)
            sys.exit(1)
        from plan_splice.commands.targets import cmd_targets
        cmd_targets(args[1], cwd)

    elif command == "mcp-server":
        from plan_splice.integrations.mcp_server import run_server
        run_server()

    elif command in ("help", "--help", "-h", None):
        print(USAGE)

    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        print(USAGE)
        sys.exit(1)
