"""API middleware."""

from catalog.api.middleware.security import RequestIDMiddleware, get_cors_origins

__all__ = ["RequestIDMiddleware", "get_cors_origins"]
