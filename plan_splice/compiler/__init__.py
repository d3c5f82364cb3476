from plan_splice.compiler.loader import PlanLoader
from plan_splice.compiler.mermaid import generate_mermaid
from plan_splice.compiler.parser import parse_plan
from plan_splice.compiler.validator import format_errors, validate_plan

__all__ = ["PlanLoader", "format_errors", "generate_mermaid", "parse_plan", "validate_plan"]
