"""
Entity Formatters

Shape loaded entities into the public JSON documents (camelCase keys).
Lookup ids stored in entity properties are resolved to their labels.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from catalog.db.models import Alias, Area, Language, TypeLabel
from catalog.entities.loader import LoadedEntity
from catalog.kernel.time import isoformat_z
from catalog.revisions.entity_types import EntityType
from catalog.revisions.records import AliasSetRecord, IdentifierSetRecord, RevisionSummary


class LookupResolver:
    """Resolve lookup ids to labels, caching within one request."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._cache: dict[tuple[type, int], str | None] = {}

    async def _label(self, model: type, lookup_id: int | None, attribute: str) -> str | None:
        if lookup_id is None:
            return None
        key = (model, lookup_id)
        if key not in self._cache:
            row = await self._session.get(model, lookup_id)
            self._cache[key] = getattr(row, attribute) if row is not None else None
        return self._cache[key]

    async def type_label(self, type_id: int | None) -> str | None:
        return await self._label(TypeLabel, type_id, "label")

    async def area(self, area_id: int | None) -> str | None:
        return await self._label(Area, area_id, "name")

    async def language(self, language_id: int | None) -> str | None:
        return await self._label(Language, language_id, "name")

    async def languages(self, language_ids: tuple[int, ...]) -> list[str]:
        names = [await self.language(language_id) for language_id in language_ids]
        return [name for name in names if name is not None]


def format_alias(alias: Alias | None) -> dict[str, Any] | None:
    if alias is None:
        return None
    return {
        "name": alias.name,
        "sortName": alias.sort_name,
        "aliasLanguage": alias.language.name if alias.language else None,
        "primary": bool(alias.primary),
    }


def _common_info(entity: LoadedEntity) -> dict[str, Any]:
    data = entity.data
    alias_set = data.alias_set
    return {
        "bbid": str(entity.bbid),
        "defaultAlias": format_alias(alias_set.default_alias if alias_set else None),
        "disambiguation": data.disambiguation.comment if data.disambiguation else None,
    }


async def get_publisher_basic_info(entity: LoadedEntity, lookups: LookupResolver) -> dict[str, Any]:
    props = entity.properties
    return {
        **_common_info(entity),
        "area": await lookups.area(props.area_id),
        "beginDate": props.begin_date,
        "endDate": props.end_date,
        "ended": props.ended,
        "type": await lookups.type_label(props.type_id),
    }


async def get_author_basic_info(entity: LoadedEntity, lookups: LookupResolver) -> dict[str, Any]:
    props = entity.properties
    return {
        **_common_info(entity),
        "area": await lookups.area(props.area_id),
        "beginDate": props.begin_date,
        "endDate": props.end_date,
        "ended": props.ended,
        "gender": await lookups.type_label(props.gender_id),
        "type": await lookups.type_label(props.type_id),
    }


async def get_work_basic_info(entity: LoadedEntity, lookups: LookupResolver) -> dict[str, Any]:
    props = entity.properties
    return {
        **_common_info(entity),
        "languages": await lookups.languages(props.language_ids),
        "type": await lookups.type_label(props.type_id),
    }


async def get_edition_basic_info(entity: LoadedEntity, lookups: LookupResolver) -> dict[str, Any]:
    props = entity.properties
    return {
        **_common_info(entity),
        "depth": props.depth,
        "editionFormat": await lookups.type_label(props.format_id),
        "editionGroupBbid": props.edition_group_bbid,
        "height": props.height,
        "languages": await lookups.languages(props.language_ids),
        "pages": props.pages,
        "publisherBbids": list(props.publisher_bbids),
        "status": await lookups.type_label(props.status_id),
        "weight": props.weight,
        "width": props.width,
    }


async def get_edition_group_basic_info(
    entity: LoadedEntity, lookups: LookupResolver
) -> dict[str, Any]:
    props = entity.properties
    return {
        **_common_info(entity),
        "type": await lookups.type_label(props.type_id),
    }


BasicInfoFormatter = Callable[[LoadedEntity, LookupResolver], Awaitable[dict[str, Any]]]

BASIC_INFO_FORMATTERS: dict[EntityType, BasicInfoFormatter] = {
    EntityType.PUBLISHER: get_publisher_basic_info,
    EntityType.AUTHOR: get_author_basic_info,
    EntityType.WORK: get_work_basic_info,
    EntityType.EDITION: get_edition_basic_info,
    EntityType.EDITION_GROUP: get_edition_group_basic_info,
}


async def get_basic_info(entity: LoadedEntity, lookups: LookupResolver) -> dict[str, Any]:
    return await BASIC_INFO_FORMATTERS[entity.entity_type](entity, lookups)


def get_entity_aliases(entity: LoadedEntity) -> dict[str, Any]:
    """Aliases with the ids and default flag an edit form sends back."""
    alias_set = entity.data.alias_set
    aliases = alias_set.aliases if alias_set else []
    default_alias_id = alias_set.default_alias_id if alias_set else None
    return {
        "bbid": str(entity.bbid),
        "aliases": [
            {
                **format_alias(alias),
                "id": alias.id,
                "languageId": alias.language_id,
                "default": alias.id == default_alias_id,
            }
            for alias in aliases
        ],
    }


def get_entity_identifiers(entity: LoadedEntity) -> dict[str, Any]:
    identifier_set = entity.data.identifier_set
    identifiers = identifier_set.identifiers if identifier_set else []
    return {
        "bbid": str(entity.bbid),
        "identifiers": [
            {
                "id": identifier.id,
                "type": identifier.type.label if identifier.type else None,
                "typeId": identifier.type_id,
                "value": identifier.value,
            }
            for identifier in identifiers
        ],
    }


def get_entity_relationships(entity: LoadedEntity) -> dict[str, Any]:
    """List relationships from the point of view of `entity`.

    A relationship is "forward" when the entity is its source; the target
    fields then describe the other end.
    """
    relationship_set = entity.data.relationship_set
    relationships = relationship_set.relationships if relationship_set else []
    formatted = []
    for relationship in relationships:
        forward = relationship.source_bbid == entity.bbid
        other = relationship.target if forward else relationship.source
        formatted.append(
            {
                "direction": "forward" if forward else "backward",
                "id": relationship.id,
                "linkPhrase": (
                    relationship.type.link_phrase if forward else relationship.type.reverse_link_phrase
                ),
                "relationshipTypeId": relationship.type_id,
                "relationshipTypeName": relationship.type.label,
                "targetBbid": str(other.bbid),
                "targetEntityType": other.type,
            }
        )
    return {"bbid": str(entity.bbid), "relationships": formatted}


def format_alias_set(alias_set: AliasSetRecord | None) -> list[dict[str, Any]]:
    """Alias set members in edit-form shape."""
    if alias_set is None:
        return []
    return [
        {
            "id": alias.id,
            "name": alias.name,
            "sortName": alias.sort_name,
            "languageId": alias.language_id,
            "primary": alias.primary,
            "default": alias.id == alias_set.default_alias_id,
        }
        for alias in alias_set.aliases
    ]


def format_identifier_set(identifier_set: IdentifierSetRecord | None) -> list[dict[str, Any]]:
    if identifier_set is None:
        return []
    return [
        {"id": identifier.id, "value": identifier.value, "typeId": identifier.type_id}
        for identifier in identifier_set.identifiers
    ]


def format_revision(revision: RevisionSummary) -> dict[str, Any]:
    return {
        "id": revision.id,
        "author": {"id": revision.author_id, "name": revision.author_name},
        "createdAt": isoformat_z(revision.created_at),
        "deleted": revision.deleted,
        "notes": list(revision.notes),
        "parentIds": list(revision.parent_ids),
    }
