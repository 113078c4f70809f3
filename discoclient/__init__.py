"""Asynchronous HTTP and WebSocket client with JSON and versioned binary encodings."""

__version__ = "0.9.2"
__all__ = ["client", "error", "request", "serialization", "socket"]