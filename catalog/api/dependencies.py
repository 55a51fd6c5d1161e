"""FastAPI dependencies shared by the entity routes."""

from typing import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.config import get_settings
from catalog.db.client import get_db_session, get_session_factory
from catalog.db.revision_store import SqlRevisionStore
from catalog.kernel.errors import ValidationError
from catalog.revisions.engine import RevisionEngine
from catalog.revisions.store import RevisionStore

EDITOR_ID_HEADER = "X-Editor-ID"


async def get_read_session() -> AsyncGenerator[AsyncSession, None]:
    """Session for read-only lookups; revisions open their own transaction."""
    async with get_db_session() as session:
        yield session


def get_revision_store() -> RevisionStore:
    return SqlRevisionStore(
        get_session_factory(),
        isolation_level=get_settings().revision_isolation_level,
    )


def get_revision_engine(store: RevisionStore = Depends(get_revision_store)) -> RevisionEngine:
    return RevisionEngine(store)


def get_editor_id(
    x_editor_id: str | None = Header(default=None, alias=EDITOR_ID_HEADER),
) -> int:
    """Acting editor id, set by the authenticating proxy in front of the API."""
    if x_editor_id is None or not x_editor_id.strip():
        raise ValidationError(
            message=f"Missing {EDITOR_ID_HEADER} header",
            code="request.missing_editor",
        )
    try:
        editor_id = int(x_editor_id)
    except ValueError:
        editor_id = 0
    if editor_id <= 0:
        raise ValidationError(
            message=f"Invalid {EDITOR_ID_HEADER} header",
            code="request.invalid_editor",
            meta={"value": x_editor_id},
        )
    return editor_id
