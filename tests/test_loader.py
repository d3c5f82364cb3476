"""Tests for PlanLoader: locating files, prefix fallback, plugins and load failures."""
from __future__ import annotations

import logging

import pytest

from conftest import BROKEN_PLUGIN, ELEMENT_PLUGIN
from plan_splice.compiler.loader import PlanLoader
from plan_splice.engine.controller import ReplacementController
from plan_splice.errors import CorruptPlanError, PlanNotFoundError, UnsupportedElementError
from plan_splice.types import ElementKind

# ═══════════════════════════════════════════════════════
# Locating plan files
# ═══════════════════════════════════════════════════════

def test_base_dir_candidate_first(workspace_factory):
    ws = workspace_factory("setup.yaml")
    assert ws.loader.locate("setup.yaml") == ws.path("setup.yaml")


def test_prefix_is_fallback_candidate(workspace_factory, caplog):
    ws = workspace_factory()
    shared = ws.write_plan("shared/login.yaml", "plan: Login\n")
    loader = PlanLoader(ws.tmp / "elsewhere", include_prefix=f"{ws.tmp / 'shared'}/")

    with caplog.at_level(logging.INFO, logger="plan_splice.compiler.loader"):
        found = loader.locate("login.yaml", loader.prefix_for("import"))

    assert found.resolve() == shared.resolve()
    assert "trying" in caplog.text


def test_prefix_per_reference_kind():
    loader = PlanLoader(include_prefix="inc/", modular_prefix="mod/")
    assert loader.prefix_for("import") == "inc/"
    assert loader.prefix_for("modular") == "mod/"


def test_missing_file_names_both_candidates(workspace_factory):
    ws = workspace_factory()
    with pytest.raises(PlanNotFoundError) as info:
        ws.loader.locate("nowhere.yaml", "fallback/")
    message = str(info.value)
    assert str(ws.tmp / "nowhere.yaml") in message
    assert "fallback/nowhere.yaml" in message
    assert info.value.path == "nowhere.yaml"


def test_missing_absolute_path_has_no_fallback(workspace_factory):
    ws = workspace_factory()
    with pytest.raises(PlanNotFoundError):
        ws.loader.locate(ws.tmp / "absent.yaml", "fallback/")


def test_fragment_key_is_resolved_path(workspace_factory):
    ws = workspace_factory("setup.yaml")
    assert ws.loader.fragment_key("setup.yaml") == str(ws.path("setup.yaml").resolve())
    assert ws.loader.fragment_key("./setup.yaml") == ws.loader.fragment_key("setup.yaml")


# ═══════════════════════════════════════════════════════
# Loading
# ═══════════════════════════════════════════════════════

def test_load_records_source(workspace_factory, caplog):
    ws = workspace_factory("setup.yaml")
    with caplog.at_level(logging.INFO, logger="plan_splice.compiler.loader"):
        raw = ws.loader.load("setup.yaml")
    assert raw.source == ws.path("setup.yaml")
    assert raw.nodes[0].element.name == "Shared Setup"
    assert "Loading plan" in caplog.text


def test_loaded_references_are_bound_to_loader(workspace_factory):
    ws = workspace_factory("checkout.yaml")
    raw = ws.loader.load("checkout.yaml")
    ref = raw.nodes[0].children[0].children[0].element
    assert isinstance(ref, ReplacementController)
    assert ref.loader is ws.loader
    assert ref.cache is ws.cache


def test_corrupt_file(workspace_factory):
    ws = workspace_factory("broken.yaml")
    with pytest.raises(CorruptPlanError) as info:
        ws.loader.load("broken.yaml")
    assert info.value.path == str(ws.path("broken.yaml"))


def test_undecodable_file_is_corrupt(workspace_factory):
    ws = workspace_factory()
    ws.path("binary.yaml").write_bytes(b"\xff\xfe\x00\x81plan")
    with pytest.raises(CorruptPlanError, match="Cannot read plan"):
        ws.loader.load("binary.yaml")


def test_unknown_type_is_unsupported(workspace_factory):
    ws = workspace_factory("unknown_type.yaml")
    with pytest.raises(UnsupportedElementError) as info:
        ws.loader.load("unknown_type.yaml")
    assert "jdbc_request" in str(info.value)
    assert "unknown_type.yaml" in str(info.value)


# ═══════════════════════════════════════════════════════
# Element plugins
# ═══════════════════════════════════════════════════════

def test_plugin_registers_element_type(workspace_factory):
    ws = workspace_factory("unknown_type.yaml")
    ws.install_plugin("jdbc.py", ELEMENT_PLUGIN.format(
        type_name="jdbc_request", kind="other", func="jdbc_request", description="Runs SQL",
    ))
    ws.reload_plugins()

    raw = ws.loader.load("unknown_type.yaml")
    element = raw.nodes[0].children[0].element
    assert element.type_name == "jdbc_request"
    assert element.kind is ElementKind.OTHER
    assert element.properties == {"query": "SELECT 1"}


def test_broken_plugin_is_skipped_with_warning(workspace_factory, caplog):
    ws = workspace_factory("setup.yaml")
    ws.install_plugin("bad.py", BROKEN_PLUGIN)
    with caplog.at_level(logging.WARNING, logger="plan_splice.engine.element_registry"):
        ws.reload_plugins()
    assert "Failed to load element plugin" in caplog.text
    assert ws.build("setup.yaml").name == "Shared Setup"


def test_plugin_cannot_add_reference_types(workspace_factory, caplog):
    ws = workspace_factory()
    ws.install_plugin("ref.py", ELEMENT_PLUGIN.format(
        type_name="remote_include", kind="fragment_reference", func="remote_include", description="",
    ))
    with caplog.at_level(logging.WARNING, logger="plan_splice.engine.element_registry"):
        ws.reload_plugins()
    assert "remote_include" not in ws.loader.registry
    assert "cannot declare fragment reference types" in caplog.text
