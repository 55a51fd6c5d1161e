"""Versionable entity properties.

Each entity type has an explicit typed record of the properties a revision
can change. Edits are detected by comparing two records field by field, so
adding a property to a record is enough to make it part of change detection.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, ClassVar

from catalog.revisions.entity_types import EntityType

# Columns stored on entity_data itself; everything else lives in the JSON
# `properties` column.
SET_REFERENCE_FIELDS = (
    "alias_set_id",
    "identifier_set_id",
    "annotation_id",
    "disambiguation_id",
    "relationship_set_id",
)


@dataclass(frozen=True, slots=True)
class EntityProperties:
    entity_type: ClassVar[EntityType]

    alias_set_id: int | None = None
    identifier_set_id: int | None = None
    annotation_id: int | None = None
    disambiguation_id: int | None = None
    relationship_set_id: int | None = None

    def type_specific(self) -> dict[str, Any]:
        """Serialize the type-specific fields for the JSON column."""
        payload: dict[str, Any] = {}
        for f in fields(self):
            if f.name in SET_REFERENCE_FIELDS:
                continue
            value = getattr(self, f.name)
            payload[f.name] = list(value) if isinstance(value, tuple) else value
        return payload

    def linked_bbids(self, target: EntityType) -> tuple[str, ...]:
        """BBIDs of `target`-typed entities referenced directly by properties."""
        return ()


@dataclass(frozen=True, slots=True)
class PublisherProperties(EntityProperties):
    entity_type: ClassVar[EntityType] = EntityType.PUBLISHER

    type_id: int | None = None
    area_id: int | None = None
    begin_date: str | None = None
    end_date: str | None = None
    ended: bool = False


@dataclass(frozen=True, slots=True)
class AuthorProperties(EntityProperties):
    entity_type: ClassVar[EntityType] = EntityType.AUTHOR

    type_id: int | None = None
    gender_id: int | None = None
    area_id: int | None = None
    begin_date: str | None = None
    end_date: str | None = None
    ended: bool = False


@dataclass(frozen=True, slots=True)
class WorkProperties(EntityProperties):
    entity_type: ClassVar[EntityType] = EntityType.WORK

    type_id: int | None = None
    language_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class EditionProperties(EntityProperties):
    entity_type: ClassVar[EntityType] = EntityType.EDITION

    edition_group_bbid: str | None = None
    format_id: int | None = None
    status_id: int | None = None
    pages: int | None = None
    width: int | None = None
    height: int | None = None
    depth: int | None = None
    weight: int | None = None
    language_ids: tuple[int, ...] = ()
    publisher_bbids: tuple[str, ...] = ()

    def linked_bbids(self, target: EntityType) -> tuple[str, ...]:
        if target is EntityType.PUBLISHER:
            return self.publisher_bbids
        if target is EntityType.EDITION_GROUP and self.edition_group_bbid:
            return (self.edition_group_bbid,)
        return ()


@dataclass(frozen=True, slots=True)
class EditionGroupProperties(EntityProperties):
    entity_type: ClassVar[EntityType] = EntityType.EDITION_GROUP

    type_id: int | None = None


PROPERTIES_BY_TYPE: dict[EntityType, type[EntityProperties]] = {
    cls.entity_type: cls
    for cls in (
        PublisherProperties,
        AuthorProperties,
        WorkProperties,
        EditionProperties,
        EditionGroupProperties,
    )
}


def properties_class(entity_type: EntityType) -> type[EntityProperties]:
    return PROPERTIES_BY_TYPE[entity_type]


def type_specific_field_names(entity_type: EntityType) -> tuple[str, ...]:
    return tuple(
        f.name for f in fields(properties_class(entity_type)) if f.name not in SET_REFERENCE_FIELDS
    )


def build_properties(
    entity_type: EntityType,
    *,
    set_references: dict[str, int | None],
    type_specific: dict[str, Any],
) -> EntityProperties:
    """Build a typed record from set references plus type-specific values.

    Unknown keys in `type_specific` are dropped so older JSON payloads still
    load after a property is removed; list values become tuples.
    """
    allowed = set(type_specific_field_names(entity_type))
    values: dict[str, Any] = {}
    for name, value in type_specific.items():
        if name not in allowed:
            continue
        values[name] = tuple(value) if isinstance(value, list) else value
    return properties_class(entity_type)(**set_references, **values)


def changed_properties(current: EntityProperties, resolved: EntityProperties) -> dict[str, Any]:
    """Return `{field: new_value}` for every field where `resolved` differs."""
    if type(current) is not type(resolved):
        raise TypeError(
            f"Cannot diff {type(current).__name__} against {type(resolved).__name__}"
        )
    changes: dict[str, Any] = {}
    for f in fields(resolved):
        new_value = getattr(resolved, f.name)
        if getattr(current, f.name) != new_value:
            changes[f.name] = new_value
    return changes


def apply_changes(current: EntityProperties, changes: dict[str, Any]) -> EntityProperties:
    return replace(current, **changes)
