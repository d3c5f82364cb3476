"""Tests for the Mermaid diagram renderer."""
from __future__ import annotations

from plan_splice.compiler.mermaid import generate_mermaid


def test_shapes_per_kind(workspace_factory):
    ws = workspace_factory("checkout.yaml")
    diagram = generate_mermaid(ws.build("checkout.yaml"))
    lines = diagram.splitlines()

    assert lines[0] == "graph TD"
    assert '    n1_Checkout_Suite(["Checkout Suite"])' in lines
    assert '    n2_Users[/"Users"/]' in lines
    assert '    n3_Shared_Login{{"Shared Login"}}' in lines
    assert '    n5_GET_orders("GET /orders")' in lines
    assert "    n1_Checkout_Suite --> n2_Users" in lines


def test_ids_restart_per_diagram(workspace_factory):
    ws = workspace_factory("setup.yaml")
    tree = ws.build("setup.yaml")
    assert generate_mermaid(tree) == generate_mermaid(tree)


def test_spliced_edges_are_dashed(workspace_factory):
    ws = workspace_factory("importer.yaml", "setup.yaml")
    diagram = generate_mermaid(ws.compose("importer.yaml").tree)
    assert "    n3_Common_Setup -.-> n4_HTTP_Defaults" in diagram
    assert "    n3_Common_Setup -.-> n5_Warmup" in diagram
    assert '    n5_Warmup[["Warmup"]]' in diagram


def test_disabled_nodes_get_class(workspace_factory):
    ws = workspace_factory("modules.yaml")
    diagram = generate_mermaid(ws.build("modules.yaml"))
    assert "classDef disabled" in diagram
    class_line = diagram.splitlines()[-1]
    assert class_line.startswith("    class ")
    assert "GET_token_debug" in class_line
    assert "Checkout_Fragment" in class_line


def test_quotes_in_names_are_escaped(workspace_factory):
    ws = workspace_factory()
    ws.write_plan("quoted.yaml", "plan: P\nchildren:\n  - 'say \"hi\"'\n")
    diagram = generate_mermaid(ws.build("quoted.yaml"))
    assert "(\"say 'hi'\")" in diagram
