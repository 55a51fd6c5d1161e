"""
SQLAlchemy Revision Store

Implements the revision engine's persistence port on an AsyncSession. One
SqlRevisionTransaction wraps one database transaction; statements are
serialized on the session with a lock because the engine awaits independent
sub-builders together and an AsyncSession must not run two statements at once.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from catalog.db.models import (
    Alias,
    AliasSet,
    Annotation,
    Disambiguation,
    Editor,
    Entity,
    EntityData,
    EntityHeader,
    EntityRevision,
    Identifier,
    IdentifierSet,
    Note,
    Revision,
    alias_set_alias,
    identifier_set_identifier,
    revision_parent,
)
from catalog.kernel.errors import NotFoundError, StoreError
from catalog.kernel.ids import new_bbid
from catalog.revisions.entity_types import EntityType
from catalog.revisions.properties import EntityProperties, build_properties
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

logger = structlog.get_logger()

# PostgreSQL SQLSTATEs that mean "another transaction won"
_CONFLICT_SQLSTATES = {"40001", "40P01"}


def _alias_record(alias: Alias) -> AliasRecord:
    return AliasRecord(
        id=alias.id,
        name=alias.name,
        sort_name=alias.sort_name,
        language_id=alias.language_id,
        primary=bool(alias.primary),
    )


def _identifier_record(identifier: Identifier) -> IdentifierRecord:
    return IdentifierRecord(id=identifier.id, type_id=identifier.type_id, value=identifier.value)


def properties_from_data(entity_type: EntityType, data: EntityData) -> EntityProperties:
    return build_properties(
        entity_type,
        set_references={
            "alias_set_id": data.alias_set_id,
            "identifier_set_id": data.identifier_set_id,
            "annotation_id": data.annotation_id,
            "disambiguation_id": data.disambiguation_id,
            "relationship_set_id": data.relationship_set_id,
        },
        type_specific=dict(data.properties or {}),
    )


def _data_row(entity_type: EntityType, properties: EntityProperties) -> EntityData:
    return EntityData(
        type=entity_type.value,
        alias_set_id=properties.alias_set_id,
        identifier_set_id=properties.identifier_set_id,
        annotation_id=properties.annotation_id,
        disambiguation_id=properties.disambiguation_id,
        relationship_set_id=properties.relationship_set_id,
        properties=properties.type_specific(),
    )


def translate_store_error(exc: SQLAlchemyError) -> StoreError:
    """Map a SQLAlchemy failure onto the catalog error taxonomy."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if isinstance(exc, DBAPIError) and sqlstate in _CONFLICT_SQLSTATES:
        return StoreError.conflict(
            "Concurrent edit detected; reload the entity and retry",
            meta={"sqlstate": sqlstate},
        )
    if isinstance(exc, IntegrityError):
        return StoreError(
            message="Store rejected the revision",
            code="store.integrity_error",
            meta={"sqlstate": sqlstate} if sqlstate else None,
        )
    return StoreError(message="Store operation failed")


class SqlRevisionTransaction:
    """RevisionTransaction backed by one AsyncSession transaction."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_entity_state(self, entity_type: EntityType, bbid: UUID) -> EntityState:
        async with self._lock:
            result = await self._session.execute(
                select(EntityHeader.master_revision_id, EntityRevision.data_id, Entity.type)
                .join(Entity, Entity.bbid == EntityHeader.bbid)
                .join(
                    EntityRevision,
                    and_(
                        EntityRevision.id == EntityHeader.master_revision_id,
                        EntityRevision.bbid == EntityHeader.bbid,
                    ),
                )
                .where(EntityHeader.bbid == bbid)
                .with_for_update(of=EntityHeader)
            )
            row = result.one_or_none()
            if row is None or row.type != entity_type.value or row.data_id is None:
                raise NotFoundError(
                    message=f"{entity_type.label} not found",
                    meta={"bbid": str(bbid)},
                )
            data = await self._session.get(EntityData, row.data_id)

        return EntityState(
            bbid=bbid,
            entity_type=entity_type,
            revision_id=row.master_revision_id,
            properties=properties_from_data(entity_type, data),
        )

    async def get_alias_set(self, set_id: int) -> AliasSetRecord | None:
        async with self._lock:
            result = await self._session.execute(
                select(AliasSet).options(selectinload(AliasSet.aliases)).where(AliasSet.id == set_id)
            )
            alias_set = result.scalar_one_or_none()
        if alias_set is None:
            return None
        return AliasSetRecord(
            id=alias_set.id,
            default_alias_id=alias_set.default_alias_id,
            aliases=tuple(_alias_record(alias) for alias in alias_set.aliases),
        )

    async def get_identifier_set(self, set_id: int) -> IdentifierSetRecord | None:
        async with self._lock:
            result = await self._session.execute(
                select(IdentifierSet)
                .options(selectinload(IdentifierSet.identifiers))
                .where(IdentifierSet.id == set_id)
            )
            identifier_set = result.scalar_one_or_none()
        if identifier_set is None:
            return None
        return IdentifierSetRecord(
            id=identifier_set.id,
            identifiers=tuple(_identifier_record(item) for item in identifier_set.identifiers),
        )

    async def get_annotation(self, annotation_id: int) -> AnnotationRecord | None:
        async with self._lock:
            annotation = await self._session.get(Annotation, annotation_id)
        if annotation is None:
            return None
        return AnnotationRecord(
            id=annotation.id,
            content=annotation.content,
            last_revision_id=annotation.last_revision_id,
        )

    async def get_disambiguation(self, disambiguation_id: int) -> DisambiguationRecord | None:
        async with self._lock:
            disambiguation = await self._session.get(Disambiguation, disambiguation_id)
        if disambiguation is None:
            return None
        return DisambiguationRecord(id=disambiguation.id, comment=disambiguation.comment)

    async def list_revisions(self, entity_type: EntityType, bbid: UUID) -> list[RevisionSummary]:
        async with self._lock:
            result = await self._session.execute(
                select(Revision, EntityRevision.data_id)
                .join(EntityRevision, EntityRevision.id == Revision.id)
                .join(Entity, Entity.bbid == EntityRevision.bbid)
                .where(EntityRevision.bbid == bbid, Entity.type == entity_type.value)
                .options(
                    selectinload(Revision.author),
                    selectinload(Revision.notes),
                    selectinload(Revision.parents),
                )
                .order_by(Revision.id.desc())
            )
            rows = result.all()
        if not rows:
            raise NotFoundError(message=f"{entity_type.label} not found", meta={"bbid": str(bbid)})
        return [
            RevisionSummary(
                id=revision.id,
                author_id=revision.author_id,
                author_name=revision.author.name if revision.author else None,
                created_at=revision.created_at,
                parent_ids=tuple(sorted(parent.id for parent in revision.parents)),
                notes=tuple(note.content for note in revision.notes),
                deleted=data_id is None,
            )
            for revision, data_id in rows
        ]

    # ------------------------------------------------------------------
    # Versioned sets
    # ------------------------------------------------------------------

    async def create_alias_set(self) -> int:
        async with self._lock:
            alias_set = AliasSet()
            self._session.add(alias_set)
            await self._session.flush()
        return alias_set.id

    async def create_alias(self, alias: AliasRecord) -> AliasRecord:
        async with self._lock:
            row = Alias(
                name=alias.name,
                sort_name=alias.sort_name,
                language_id=alias.language_id,
                primary=alias.primary,
            )
            self._session.add(row)
            await self._session.flush()
        return _alias_record(row)

    async def attach_aliases(self, set_id: int, alias_ids: list[int]) -> None:
        if not alias_ids:
            return
        async with self._lock:
            await self._session.execute(
                insert(alias_set_alias),
                [{"set_id": set_id, "alias_id": alias_id} for alias_id in alias_ids],
            )

    async def set_default_alias(self, set_id: int, alias_id: int) -> None:
        async with self._lock:
            await self._session.execute(
                update(AliasSet).where(AliasSet.id == set_id).values(default_alias_id=alias_id)
            )

    async def create_identifier_set(self) -> int:
        async with self._lock:
            identifier_set = IdentifierSet()
            self._session.add(identifier_set)
            await self._session.flush()
        return identifier_set.id

    async def create_identifier(self, identifier: IdentifierRecord) -> IdentifierRecord:
        async with self._lock:
            row = Identifier(type_id=identifier.type_id, value=identifier.value)
            self._session.add(row)
            await self._session.flush()
        return _identifier_record(row)

    async def attach_identifiers(self, set_id: int, identifier_ids: list[int]) -> None:
        if not identifier_ids:
            return
        async with self._lock:
            await self._session.execute(
                insert(identifier_set_identifier),
                [{"set_id": set_id, "identifier_id": identifier_id} for identifier_id in identifier_ids],
            )

    # ------------------------------------------------------------------
    # Scalar fields
    # ------------------------------------------------------------------

    async def create_annotation(self, content: str) -> AnnotationRecord:
        async with self._lock:
            row = Annotation(content=content)
            self._session.add(row)
            await self._session.flush()
        return AnnotationRecord(id=row.id, content=row.content)

    async def stamp_annotation(self, annotation_id: int, revision_id: int) -> None:
        async with self._lock:
            await self._session.execute(
                update(Annotation)
                .where(Annotation.id == annotation_id)
                .values(last_revision_id=revision_id)
            )

    async def create_disambiguation(self, comment: str) -> DisambiguationRecord:
        async with self._lock:
            row = Disambiguation(comment=comment)
            self._session.add(row)
            await self._session.flush()
        return DisambiguationRecord(id=row.id, comment=row.comment)

    # ------------------------------------------------------------------
    # Revisions
    # ------------------------------------------------------------------

    async def create_revision(self, author_id: int, entity_type: EntityType) -> int:
        async with self._lock:
            # revision.author_id is a foreign key; report a missing editor as such
            if await self._session.get(Editor, author_id) is None:
                raise NotFoundError(
                    message="Editor not found",
                    code="editor.not_found",
                    meta={"editor_id": author_id},
                )
            revision = Revision(author_id=author_id, entity_type=entity_type.value)
            self._session.add(revision)
            await self._session.flush()
        return revision.id

    async def add_revision_parent(self, revision_id: int, parent_id: int) -> None:
        async with self._lock:
            await self._session.execute(
                insert(revision_parent).values(parent_id=parent_id, child_id=revision_id)
            )

    async def create_note(self, author_id: int, revision_id: int, content: str) -> None:
        async with self._lock:
            self._session.add(Note(author_id=author_id, revision_id=revision_id, content=content))
            await self._session.flush()

    async def increment_editor_revisions(self, editor_id: int) -> None:
        async with self._lock:
            result = await self._session.execute(
                update(Editor)
                .where(Editor.id == editor_id)
                .values(revisions_applied=Editor.revisions_applied + 1)
            )
        if result.rowcount == 0:
            raise NotFoundError(message="Editor not found", code="editor.not_found")

    # ------------------------------------------------------------------
    # Entity header
    # ------------------------------------------------------------------

    async def insert_entity(
        self,
        entity_type: EntityType,
        properties: EntityProperties,
        revision_id: int,
    ) -> UUID:
        bbid = new_bbid()
        async with self._lock:
            self._session.add(Entity(bbid=bbid, type=entity_type.value))
            data = _data_row(entity_type, properties)
            self._session.add(data)
            await self._session.flush()
            self._session.add(EntityRevision(id=revision_id, bbid=bbid, data_id=data.id))
            self._session.add(EntityHeader(bbid=bbid, master_revision_id=revision_id))
            await self._session.flush()
        return bbid

    async def update_entity(
        self,
        bbid: UUID,
        properties: EntityProperties,
        revision_id: int,
        *,
        expected_revision_id: int,
    ) -> None:
        async with self._lock:
            data = _data_row(properties.entity_type, properties)
            self._session.add(data)
            await self._session.flush()
            await self._repoint_header(bbid, revision_id, data.id, expected_revision_id)

    async def delete_entity(
        self,
        bbid: UUID,
        revision_id: int,
        *,
        expected_revision_id: int,
    ) -> None:
        async with self._lock:
            await self._repoint_header(bbid, revision_id, None, expected_revision_id)

    async def _repoint_header(
        self,
        bbid: UUID,
        revision_id: int,
        data_id: int | None,
        expected_revision_id: int,
    ) -> None:
        self._session.add(EntityRevision(id=revision_id, bbid=bbid, data_id=data_id))
        await self._session.flush()
        result = await self._session.execute(
            update(EntityHeader)
            .where(
                EntityHeader.bbid == bbid,
                EntityHeader.master_revision_id == expected_revision_id,
            )
            .values(master_revision_id=revision_id)
        )
        if result.rowcount == 0:
            raise StoreError.conflict(
                "Entity was changed by another revision",
                meta={"bbid": str(bbid), "expected_revision_id": expected_revision_id},
            )


class SqlRevisionStore:
    """RevisionStore opening one SERIALIZABLE (by default) transaction per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        isolation_level: str = "SERIALIZABLE",
    ):
        self._session_factory = session_factory
        self._isolation_level = isolation_level

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlRevisionTransaction]:
        session = self._session_factory()
        try:
            await session.connection(execution_options={"isolation_level": self._isolation_level})
            yield SqlRevisionTransaction(session)
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("Revision transaction rolled back", error=str(exc))
            raise translate_store_error(exc) from exc
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()
