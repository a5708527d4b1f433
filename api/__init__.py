"""Number trading back office HTTP API."""

__version__ = "1.0.0"
