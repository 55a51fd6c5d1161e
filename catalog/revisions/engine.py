"""
Revision Engine

Turns a submitted entity form into a committed revision:

1. Open a transaction (Started).
2. Resolve every versioned sub-record independently: alias set, identifier
   set, annotation, disambiguation (FieldsResolved once all settle).
3. Diff the resolved property record against the stored one; an edit that
   changes nothing is rejected with NoOpEditError.
4. Create the revision, link its parent, write the new entity state and
   repoint the header, stamp a fresh annotation, credit the editor and store
   the edit note (Committed).

Any exception aborts the transaction and nothing is persisted.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable
from uuid import UUID

import structlog

from catalog.kernel.errors import CatalogError, NoOpEditError, ValidationError
from catalog.monitoring.metrics import get_metrics
from catalog.revisions.entity_types import EntityType
from catalog.revisions.forms import EntityForm
from catalog.revisions.properties import (
    EntityProperties,
    apply_changes,
    build_properties,
    changed_properties,
)
from catalog.revisions.records import (
    AliasSetRecord,
    AnnotationRecord,
    DisambiguationRecord,
    IdentifierSetRecord,
    RevisionResult,
    RevisionSummary,
)
from catalog.revisions.scalar_fields import process_annotation, process_disambiguation
from catalog.revisions.set_builder import build_alias_set, build_identifier_set
from catalog.revisions.store import RevisionStore, RevisionTransaction

logger = structlog.get_logger()


async def settle(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await independent steps together and re-raise the first failure.

    Every awaitable runs to completion before an error propagates, so no step
    is still writing when the caller rolls the transaction back.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


async def _none() -> None:
    return None


class RevisionEngine:
    """Create, edit and delete versioned entities through a RevisionStore."""

    def __init__(self, store: RevisionStore):
        self._store = store

    async def create_entity(
        self,
        entity_type: EntityType,
        form: EntityForm,
        *,
        editor_id: int,
    ) -> RevisionResult:
        _check_form_type(entity_type, form)
        default_alias = form.default_alias_key()

        try:
            async with self._store.transaction() as tx:
                alias_set, identifier_set, annotation, disambiguation = await settle(
                    build_alias_set(tx, None, form.alias_records(), default_alias),
                    build_identifier_set(tx, None, form.identifier_records()),
                    process_annotation(tx, None, form.annotation),
                    process_disambiguation(tx, None, form.disambiguation),
                )
                properties = _resolve_properties(
                    entity_type,
                    form,
                    alias_set=alias_set,
                    identifier_set=identifier_set,
                    annotation=annotation,
                    disambiguation=disambiguation,
                    relationship_set_id=None,
                )

                revision_id = await tx.create_revision(editor_id, entity_type)
                bbid = await tx.insert_entity(entity_type, properties, revision_id)
                await self._finish(
                    tx,
                    revision_id=revision_id,
                    editor_id=editor_id,
                    note=form.note,
                    fresh_annotation=annotation,
                )
        except CatalogError as exc:
            _record_rejection(entity_type, exc)
            raise

        logger.info(
            "Entity created",
            entity_type=entity_type.value,
            bbid=str(bbid),
            revision_id=revision_id,
            editor_id=editor_id,
        )
        get_metrics().record_revision(entity_type.value, "create")
        return RevisionResult(
            bbid=bbid,
            entity_type=entity_type,
            revision_id=revision_id,
            parent_revision_id=None,
            properties=properties,
            alias_set=alias_set,
            identifier_set=identifier_set,
        )

    async def edit_entity(
        self,
        entity_type: EntityType,
        bbid: UUID,
        form: EntityForm,
        *,
        editor_id: int,
    ) -> RevisionResult:
        _check_form_type(entity_type, form)
        default_alias = form.default_alias_key()

        try:
            async with self._store.transaction() as tx:
                current = await tx.get_entity_state(entity_type, bbid)
                old_alias_set, old_identifier_set, old_annotation, old_disambiguation = (
                    await _load_versioned_fields(tx, current.properties)
                )

                alias_set, identifier_set, annotation, disambiguation = await settle(
                    build_alias_set(tx, old_alias_set, form.alias_records(), default_alias),
                    build_identifier_set(tx, old_identifier_set, form.identifier_records()),
                    process_annotation(tx, old_annotation, form.annotation),
                    process_disambiguation(tx, old_disambiguation, form.disambiguation),
                )
                resolved = _resolve_properties(
                    entity_type,
                    form,
                    alias_set=alias_set,
                    identifier_set=identifier_set,
                    annotation=annotation,
                    disambiguation=disambiguation,
                    relationship_set_id=current.properties.relationship_set_id,
                )

                changes = changed_properties(current.properties, resolved)
                if not changes:
                    raise NoOpEditError(meta={"bbid": str(bbid)})

                revision_id = await tx.create_revision(editor_id, entity_type)
                await tx.add_revision_parent(revision_id, current.revision_id)

                properties = apply_changes(current.properties, changes)
                await tx.update_entity(
                    bbid,
                    properties,
                    revision_id,
                    expected_revision_id=current.revision_id,
                )
                fresh_annotation = annotation if annotation is not old_annotation else None
                await self._finish(
                    tx,
                    revision_id=revision_id,
                    editor_id=editor_id,
                    note=form.note,
                    fresh_annotation=fresh_annotation,
                )
        except CatalogError as exc:
            _record_rejection(entity_type, exc)
            raise

        logger.info(
            "Entity edited",
            entity_type=entity_type.value,
            bbid=str(bbid),
            revision_id=revision_id,
            parent_revision_id=current.revision_id,
            changed=sorted(changes),
            editor_id=editor_id,
        )
        get_metrics().record_revision(entity_type.value, "edit")
        return RevisionResult(
            bbid=bbid,
            entity_type=entity_type,
            revision_id=revision_id,
            parent_revision_id=current.revision_id,
            properties=properties,
            changed_fields=tuple(sorted(changes)),
            alias_set=alias_set,
            identifier_set=identifier_set,
        )

    async def delete_entity(
        self,
        entity_type: EntityType,
        bbid: UUID,
        *,
        editor_id: int,
        note: str | None = None,
    ) -> RevisionResult:
        """Record a deletion: a revision with no entity data."""
        try:
            async with self._store.transaction() as tx:
                current = await tx.get_entity_state(entity_type, bbid)
                revision_id = await tx.create_revision(editor_id, entity_type)
                await tx.add_revision_parent(revision_id, current.revision_id)
                await tx.delete_entity(
                    bbid,
                    revision_id,
                    expected_revision_id=current.revision_id,
                )
                await self._finish(
                    tx,
                    revision_id=revision_id,
                    editor_id=editor_id,
                    note=note,
                    fresh_annotation=None,
                )
        except CatalogError as exc:
            _record_rejection(entity_type, exc)
            raise

        logger.info(
            "Entity deleted",
            entity_type=entity_type.value,
            bbid=str(bbid),
            revision_id=revision_id,
            editor_id=editor_id,
        )
        get_metrics().record_revision(entity_type.value, "delete")
        return RevisionResult(
            bbid=bbid,
            entity_type=entity_type,
            revision_id=revision_id,
            parent_revision_id=current.revision_id,
            properties=None,
        )

    async def list_revisions(self, entity_type: EntityType, bbid: UUID) -> list[RevisionSummary]:
        async with self._store.transaction() as tx:
            return await tx.list_revisions(entity_type, bbid)

    async def _finish(
        self,
        tx: RevisionTransaction,
        *,
        revision_id: int,
        editor_id: int,
        note: str | None,
        fresh_annotation: AnnotationRecord | None,
    ) -> None:
        steps = [tx.increment_editor_revisions(editor_id)]
        if fresh_annotation is not None:
            steps.append(tx.stamp_annotation(fresh_annotation.id, revision_id))
        if note and note.strip():
            steps.append(tx.create_note(editor_id, revision_id, note))
        await settle(*steps)


def _check_form_type(entity_type: EntityType, form: EntityForm) -> None:
    if form.entity_type is not entity_type:
        raise ValidationError(
            message=f"{type(form).__name__} cannot be used for {entity_type.value}",
            code="form.entity_type_mismatch",
        )


async def _load_versioned_fields(
    tx: RevisionTransaction,
    properties: EntityProperties,
) -> list[Any]:
    return await settle(
        tx.get_alias_set(properties.alias_set_id) if properties.alias_set_id else _none(),
        tx.get_identifier_set(properties.identifier_set_id) if properties.identifier_set_id else _none(),
        tx.get_annotation(properties.annotation_id) if properties.annotation_id else _none(),
        tx.get_disambiguation(properties.disambiguation_id) if properties.disambiguation_id else _none(),
    )


def _resolve_properties(
    entity_type: EntityType,
    form: EntityForm,
    *,
    alias_set: AliasSetRecord,
    identifier_set: IdentifierSetRecord,
    annotation: AnnotationRecord | None,
    disambiguation: DisambiguationRecord | None,
    relationship_set_id: int | None,
) -> EntityProperties:
    return build_properties(
        entity_type,
        set_references={
            "alias_set_id": alias_set.id,
            "identifier_set_id": identifier_set.id,
            "annotation_id": annotation.id if annotation else None,
            "disambiguation_id": disambiguation.id if disambiguation else None,
            "relationship_set_id": relationship_set_id,
        },
        type_specific=form.derived_properties(),
    )


def _record_rejection(entity_type: EntityType, exc: CatalogError) -> None:
    logger.warning(
        "Revision rejected",
        entity_type=entity_type.value,
        code=exc.code,
        error=exc.message,
    )
    get_metrics().record_rejection(entity_type.value, exc.code)
