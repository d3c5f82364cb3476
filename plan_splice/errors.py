"""Exception hierarchy for plan loading and fragment resolution."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class PlanSpliceError(Exception):
    """Base exception for plan-splice errors."""


class PlanLoadError(PlanSpliceError):
    """Raised when an external plan cannot be turned into a raw tree."""

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class PlanNotFoundError(PlanLoadError):
    """Raised when no candidate location holds a readable plan file."""


class CorruptPlanError(PlanLoadError):
    """Raised when a plan file is not structurally readable."""


class UnsupportedElementError(PlanLoadError):
    """Raised when a plan uses an element type nobody registered."""

    def __init__(self, type_name: str, path: str | Path | None = None):
        where = f" in {path}" if path is not None else ""
        super().__init__(f"Unsupported element type: '{type_name}'{where}", path)
        self.type_name = type_name


class SelectionNotFoundError(PlanSpliceError):
    """Raised when a modular reference's node path matches nothing during a run."""

    def __init__(self, controller_name: str, node_path: Sequence[str]):
        rendered = " > ".join(node_path)
        super().__init__(
            f'Fragment reference "{controller_name}" has no selected target '
            f'(path "{rendered}" not found, was an element renamed?); run aborted'
        )
        self.controller_name = controller_name
        self.node_path = tuple(node_path)


class CyclicIncludeError(PlanSpliceError):
    """Raised when a plan includes itself, directly or through other plans."""

    def __init__(self, key: str, chain: Sequence[str] = ()):
        trail = " -> ".join([*chain, key])
        super().__init__(f"Cyclic include: {trail}")
        self.key = key
        self.chain = tuple(chain)
