"""Edge gateway: the single public entry point in front of the internal API."""

__version__ = "0.1.0"
