from __future__ import annotations

import re
from typing import Any


_ERROR_CODE_RE = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*$")


class CatalogError(Exception):
    """Base typed error for the catalog service.

    Goals:
    - Stable `code` for programmatic handling across clients.
    - Human-readable `message` for API consumers.
    - Optional `meta` payload for debugging (safe-to-expose only).
    """

    def __init__(
        self,
        *,
        code: str,
        message: str,
        status_code: int = 500,
        meta: dict[str, Any] | None = None,
    ) -> None:
        if not _ERROR_CODE_RE.fullmatch(code):
            raise ValueError(
                "Invalid catalog error code. Expected dot-separated lowercase tokens, "
                f"got: {code!r}"
            )
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = int(status_code)
        self.meta = dict(meta or {})

    def to_public_dict(self, *, request_id: str | None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            # Keep `detail` for compatibility with FastAPI error surfaces.
            "detail": self.message,
            "code": self.code,
        }
        if request_id:
            payload["request_id"] = request_id
        if self.meta:
            payload["meta"] = self.meta
        return payload


class NotFoundError(CatalogError):
    def __init__(self, *, message: str = "Not found", code: str = "resource.not_found", meta: dict[str, Any] | None = None):
        super().__init__(code=code, message=message, status_code=404, meta=meta)


class ValidationError(CatalogError):
    def __init__(
        self,
        *,
        message: str = "Validation error",
        code: str = "request.validation_error",
        meta: dict[str, Any] | None = None,
        status_code: int = 400,
    ):
        super().__init__(code=code, message=message, status_code=status_code, meta=meta)


class NoOpEditError(CatalogError):
    """An edit was submitted that resolves to the entity's current state."""

    def __init__(
        self,
        *,
        message: str = "Entity did not change",
        code: str = "revision.no_change",
        meta: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, status_code=400, meta=meta)


class ConsistencyError(CatalogError):
    """The requested default alias is not a member of the resolved alias set."""

    def __init__(
        self,
        *,
        message: str = "Default alias does not match any submitted alias",
        code: str = "revision.inconsistent_default_alias",
        meta: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, status_code=400, meta=meta)


class StoreError(CatalogError):
    """The backing store rejected or failed a transaction.

    Conflicts (serialization failures, a lost race on an entity header) use
    status 409 so callers know a retry against fresh state may succeed.
    """

    def __init__(
        self,
        *,
        message: str = "Store operation failed",
        code: str = "store.error",
        meta: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(code=code, message=message, status_code=status_code, meta=meta)

    @classmethod
    def conflict(cls, message: str, *, meta: dict[str, Any] | None = None) -> "StoreError":
        return cls(message=message, code="store.conflict", meta=meta, status_code=409)
