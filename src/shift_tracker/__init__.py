"""Agent shift tracking and break-policy engine."""

__version__ = "0.1.0"
