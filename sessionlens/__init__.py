"""Distill terminated coding-agent session logs into analyzable artifacts."""

__version__ = "0.1.0"
