from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

# ─── Element kinds ───

class ElementKind(Enum):
    PLAN = "plan"
    THREAD_GROUP = "thread_group"
    TEST_FRAGMENT = "test_fragment"
    CONTROLLER = "controller"
    FRAGMENT_REFERENCE = "fragment_reference"
    OTHER = "other"


class SelectionMode(Enum):
    WHOLE_TREE = "import"      # splice the entire external plan
    PATH_SELECTED = "modular"  # splice one sub-branch located by node_path


class ResolutionState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"

# ─── Element payload ───

@dataclass(eq=False)
class Element:
    name: str = ""
    type_name: str = "sampler"
    kind: ElementKind = ElementKind.OTHER
    enabled: bool = True
    properties: dict[str, Any] = field(default_factory=dict)
    # Plan-root only
    functional_mode: bool = False
    serialized: bool = False

    @property
    def reference_kind(self) -> str | None:
        """Selection mode value for fragment references, None otherwise."""
        return None

    def copy(self) -> Element:
        return Element(
            name=self.name,
            type_name=self.type_name,
            kind=self.kind,
            enabled=self.enabled,
            properties=copy.deepcopy(self.properties),
            functional_mode=self.functional_mode,
            serialized=self.serialized,
        )

    @classmethod
    def plan_root(cls, name: str = "", *, functional_mode: bool = False, serialized: bool = False) -> Element:
        return cls(
            name=name,
            type_name="plan",
            kind=ElementKind.PLAN,
            functional_mode=functional_mode,
            serialized=serialized,
        )

    def __repr__(self) -> str:
        flag = "" if self.enabled else ", disabled"
        return f"<{self.type_name} {self.name!r}{flag}>"

# ─── Raw tree (PlanLoader output) ───

@dataclass
class RawNode:
    element: Element
    children: list[RawNode] = field(default_factory=list)


@dataclass
class RawTree:
    nodes: list[RawNode] = field(default_factory=list)
    source: Path | None = None

    def __len__(self) -> int:
        return len(self.nodes)
