"""plan-splice: splice external test-plan fragments into a plan."""

__version__ = "0.1.0"
