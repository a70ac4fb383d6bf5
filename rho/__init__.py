"""State, event handling, conversation storage and server helpers for a terminal agent-server client."""

__version__ = "0.1.0"