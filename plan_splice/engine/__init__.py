from plan_splice.engine.composer import CompositionResult, Composer
from plan_splice.engine.controller import ReplacementController
from plan_splice.engine.tree import TreeNode

__all__ = ["CompositionResult", "Composer", "ReplacementController", "TreeNode"]
