"""Request context, error collection, key storage and content negotiation for HTTP handlers."""

__version__ = "0.1.0"

__all__ = ["context", "debug", "errors", "negotiation", "request", "store"]