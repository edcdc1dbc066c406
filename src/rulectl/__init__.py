"""rulectl — declarative rule evaluation engine and CLI."""

__version__ = "0.1.0"
