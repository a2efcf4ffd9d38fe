"""Repository scanning pipeline: AI-code detection, rule-based findings, dependency audit and debt scoring."""

__version__ = "0.1.0"

__all__ = ["__version__"]
