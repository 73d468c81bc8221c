"""Tab expiration engine."""

from .service import ExpiryService

__all__ = ["ExpiryService"]
