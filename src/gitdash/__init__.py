"""Command-execution orchestration for dashboard-driven git workflows."""

__version__ = "0.1.0"

__all__ = ["__version__"]
