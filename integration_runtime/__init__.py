"""Execution runtime for declarative third-party API integration descriptors."""

__version__ = "0.1.0"
