"""Plain records exchanged between the revision engine and its store.

Records are frozen so a set snapshot read at the start of an edit cannot be
mutated by the builders that consume it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple
from uuid import UUID

from catalog.revisions.entity_types import EntityType
from catalog.revisions.properties import EntityProperties


class AliasKey(NamedTuple):
    """Fields that identify the default alias within a set."""

    name: str
    sort_name: str
    language_id: int | None


@dataclass(frozen=True, slots=True)
class AliasRecord:
    id: int | None
    name: str
    sort_name: str
    language_id: int | None = None
    primary: bool = False

    @property
    def key(self) -> AliasKey:
        return AliasKey(self.name, self.sort_name, self.language_id)


@dataclass(frozen=True, slots=True)
class IdentifierRecord:
    id: int | None
    type_id: int
    value: str


@dataclass(frozen=True, slots=True)
class AliasSetRecord:
    id: int
    default_alias_id: int | None
    aliases: tuple[AliasRecord, ...] = ()

    @property
    def default_alias(self) -> AliasRecord | None:
        for alias in self.aliases:
            if alias.id == self.default_alias_id:
                return alias
        return None


@dataclass(frozen=True, slots=True)
class IdentifierSetRecord:
    id: int
    identifiers: tuple[IdentifierRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class AnnotationRecord:
    id: int
    content: str
    last_revision_id: int | None = None


@dataclass(frozen=True, slots=True)
class DisambiguationRecord:
    id: int
    comment: str


@dataclass(frozen=True, slots=True)
class EntityState:
    """An entity as of its master revision."""

    bbid: UUID
    entity_type: EntityType
    revision_id: int
    properties: EntityProperties


@dataclass(frozen=True, slots=True)
class RevisionSummary:
    id: int
    author_id: int
    author_name: str | None
    created_at: datetime
    parent_ids: tuple[int, ...] = ()
    notes: tuple[str, ...] = ()
    deleted: bool = False


@dataclass(frozen=True, slots=True)
class RevisionResult:
    """Outcome of a committed create, edit or delete."""

    bbid: UUID
    entity_type: EntityType
    revision_id: int
    parent_revision_id: int | None
    properties: EntityProperties | None
    changed_fields: tuple[str, ...] = field(default=())
    # Sets the revision points at, so callers can resubmit items by id
    alias_set: AliasSetRecord | None = None
    identifier_set: IdentifierSetRecord | None = None
