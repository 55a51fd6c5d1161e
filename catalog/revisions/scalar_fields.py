"""Singleton versioned text fields: annotation and disambiguation."""

from __future__ import annotations

from catalog.revisions.records import AnnotationRecord, DisambiguationRecord
from catalog.revisions.store import RevisionTransaction


async def process_annotation(
    tx: RevisionTransaction,
    old: AnnotationRecord | None,
    content: str | None,
) -> AnnotationRecord | None:
    """Reuse `old` when the content is unchanged, else create a new annotation.

    A new annotation has no `last_revision_id` yet; the engine stamps it once
    the revision row exists.
    """
    old_content = old.content if old is not None else None
    if content == old_content:
        return old
    if not content:
        return None
    return await tx.create_annotation(content)


async def process_disambiguation(
    tx: RevisionTransaction,
    old: DisambiguationRecord | None,
    comment: str | None,
) -> DisambiguationRecord | None:
    old_comment = old.comment if old is not None else None
    if comment == old_comment:
        return old
    if not comment:
        return None
    return await tx.create_disambiguation(comment)
