"""Persistence port for the revision engine.

The engine only talks to a `RevisionTransaction`. Every sub-builder receives
the transaction explicitly; nothing reaches for an ambient session. The
SQLAlchemy implementation lives in catalog.db.revision_store.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol
from uuid import UUID

from catalog.revisions.entity_types import EntityType
from catalog.revisions.properties import EntityProperties
from catalog.revisions.records import (
    AliasRecord,
    AliasSetRecord,
    AnnotationRecord,
    DisambiguationRecord,
    EntityState,
    IdentifierRecord,
    IdentifierSetRecord,
    RevisionSummary,
)


class RevisionTransaction(Protocol):
    """One atomic unit of work against the backing store."""

    # Reads
    async def get_entity_state(self, entity_type: EntityType, bbid: UUID) -> EntityState: ...

    async def get_alias_set(self, set_id: int) -> AliasSetRecord | None: ...

    async def get_identifier_set(self, set_id: int) -> IdentifierSetRecord | None: ...

    async def get_annotation(self, annotation_id: int) -> AnnotationRecord | None: ...

    async def get_disambiguation(self, disambiguation_id: int) -> DisambiguationRecord | None: ...

    async def list_revisions(self, entity_type: EntityType, bbid: UUID) -> list[RevisionSummary]: ...

    # Versioned sets
    async def create_alias_set(self) -> int: ...

    async def create_alias(self, alias: AliasRecord) -> AliasRecord: ...

    async def attach_aliases(self, set_id: int, alias_ids: list[int]) -> None: ...

    async def set_default_alias(self, set_id: int, alias_id: int) -> None: ...

    async def create_identifier_set(self) -> int: ...

    async def create_identifier(self, identifier: IdentifierRecord) -> IdentifierRecord: ...

    async def attach_identifiers(self, set_id: int, identifier_ids: list[int]) -> None: ...

    # Scalar fields
    async def create_annotation(self, content: str) -> AnnotationRecord: ...

    async def stamp_annotation(self, annotation_id: int, revision_id: int) -> None: ...

    async def create_disambiguation(self, comment: str) -> DisambiguationRecord: ...

    # Revisions
    async def create_revision(self, author_id: int, entity_type: EntityType) -> int: ...

    async def add_revision_parent(self, revision_id: int, parent_id: int) -> None: ...

    async def create_note(self, author_id: int, revision_id: int, content: str) -> None: ...

    async def increment_editor_revisions(self, editor_id: int) -> None: ...

    # Entity header
    async def insert_entity(
        self,
        entity_type: EntityType,
        properties: EntityProperties,
        revision_id: int,
    ) -> UUID: ...

    async def update_entity(
        self,
        bbid: UUID,
        properties: EntityProperties,
        revision_id: int,
        *,
        expected_revision_id: int,
    ) -> None: ...

    async def delete_entity(
        self,
        bbid: UUID,
        revision_id: int,
        *,
        expected_revision_id: int,
    ) -> None: ...


class RevisionStore(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[RevisionTransaction]:
        """Open a transaction; commit on clean exit, roll back on any exception."""
        ...
