"""Parse YAML plan files into a raw element tree."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

import yaml

from plan_splice.engine.controller import ReplacementController
from plan_splice.engine.element_registry import REFERENCE_MODES, ElementRegistry
from plan_splice.engine.resolver import parse_node_path
from plan_splice.errors import CorruptPlanError
from plan_splice.types import Element, ElementKind, RawNode, RawTree

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from plan_splice.types import SelectionMode

    ReferenceFactory = Callable[..., ReplacementController]

# Alias key -> internal key mapping
KEYWORD_MAP = {
    "elements": "children",
    "steps": "children",
    "file": "path",
    "filename": "path",
    "include_path": "path",
    "target": "node_path",
    "module": "node_path",
    "functional": "functional_mode",
    "serialize": "serialized",
}

# Keys consumed by the parser, not forwarded to properties
_CONSUMED_KEYS = frozenset({
    "type", "name", "enabled", "disabled", "children",
    "path", "node_path", "functional_mode", "serialized",
})


def _normalize_key(key: Any) -> Any:
    return KEYWORD_MAP.get(key, key) if isinstance(key, str) else key


def _normalize(obj):
    if isinstance(obj, dict):
        return {_normalize_key(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_normalize(item) for item in obj]
    return obj


def _parse_raw_element(raw, registry: ElementRegistry) -> dict:
    """Turn one YAML entry (string, shorthand or full mapping) into a body dict with a type."""
    if isinstance(raw, str):
        return {"type": "sampler", "name": raw}

    if not isinstance(raw, dict):
        raise CorruptPlanError(f"Invalid element: expected a mapping or a string, got {type(raw).__name__}")

    if "type" in raw:
        return dict(raw)

    keys = list(raw.keys())
    if len(keys) == 1:
        key = keys[0]
        value = raw[key]
        # {sampler: "POST /login"}
        if isinstance(value, str) and key in registry:
            return {"type": key, "name": value}
        # {Login: {type: transaction, ...}}
        if value is None:
            return {"type": "sampler", "name": str(key)}
        if isinstance(value, dict):
            body = dict(value)
            body.setdefault("name", str(key))
            body.setdefault("type", "sampler")
            return body

    if "plan" in raw:
        body = dict(raw)
        body["type"] = "plan"
        body.setdefault("name", body.pop("plan"))
        return body

    if "name" in raw:
        return {"type": "sampler", **raw}

    raise CorruptPlanError(f"Invalid element: cannot infer a type from keys {keys}")


def _is_enabled(body: dict) -> bool:
    if "disabled" in body:
        return not bool(body["disabled"])
    return bool(body.get("enabled", True))


def _build_element(
    body: dict,
    registry: ElementRegistry,
    source: Path | None,
    reference_factory: ReferenceFactory,
) -> Element:
    type_name = str(body["type"])
    kind = registry.kind_of(type_name, source)
    name = "" if body.get("name") is None else str(body["name"])
    properties = {k: v for k, v in body.items() if k not in _CONSUMED_KEYS}

    if kind is ElementKind.FRAGMENT_REFERENCE:
        try:
            node_path = parse_node_path(body.get("node_path"))
        except ValueError as e:
            raise CorruptPlanError(f'Invalid element "{name}": {e}', source) from e
        return reference_factory(
            name=name,
            include_path=str(body.get("path") or ""),
            mode=REFERENCE_MODES[type_name],
            node_path=node_path,
            enabled=_is_enabled(body),
            type_name=type_name,
            properties=properties,
        )

    return Element(
        name=name,
        type_name=type_name,
        kind=kind,
        enabled=_is_enabled(body),
        properties=properties,
        functional_mode=bool(body.get("functional_mode", False)),
        serialized=bool(body.get("serialized", False)),
    )


def _process_elements(
    raw_elements: list,
    registry: ElementRegistry,
    source: Path | None,
    reference_factory: ReferenceFactory,
) -> list[RawNode]:
    nodes: list[RawNode] = []
    for raw in raw_elements:
        body = _parse_raw_element(raw, registry)
        children_raw = body.get("children") or []
        if not isinstance(children_raw, list):
            raise CorruptPlanError(f'Invalid element "{body.get("name")}": children must be a list', source)
        element = _build_element(body, registry, source, reference_factory)
        children = _process_elements(children_raw, registry, source, reference_factory)
        nodes.append(RawNode(element=element, children=children))
    return nodes


def _default_reference_factory(
    *,
    name: str,
    include_path: str,
    mode: SelectionMode,
    node_path: tuple[str, ...] | None,
    enabled: bool,
    type_name: str,
    properties: dict,
) -> ReplacementController:
    return ReplacementController(
        name=name,
        include_path=include_path,
        mode=mode,
        node_path=node_path,
        enabled=enabled,
        type_name=type_name,
        properties=properties,
    )


def parse_plan(
    content: str,
    *,
    registry: ElementRegistry | None = None,
    source: Path | None = None,
    reference_factory: ReferenceFactory | None = None,
) -> RawTree:
    registry = registry or ElementRegistry()
    factory = reference_factory or _default_reference_factory

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise CorruptPlanError(f"Invalid YAML: {e}", source) from e

    if raw is None:
        return RawTree(source=source)

    normalized = _normalize(raw)
    try:
        if isinstance(normalized, list):
            nodes = _process_elements(normalized, registry, source, factory)
        elif isinstance(normalized, dict):
            nodes = _process_elements([normalized], registry, source, factory)
        else:
            raise CorruptPlanError("Invalid plan: expected a mapping or a list of elements", source)
    except CorruptPlanError as e:
        if e.path is None and source is not None:
            raise CorruptPlanError(f"{e} ({source})", source) from e
        raise

    return RawTree(nodes=nodes, source=source)
