"""
Browse Requests

`GET /{type}?{root}={bbid}` lists the entities of `type` related to a root
entity. Exactly one root key may be given; the remaining recognized keys are
case-insensitive filters on the related entities' basic info.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.entities.formatters import LookupResolver, get_basic_info
from catalog.entities.loader import (
    BASIC_RELATIONS,
    RELATIONSHIP_RELATIONS,
    LoadedEntity,
    load_entity,
)
from catalog.kernel.errors import NotFoundError, ValidationError
from catalog.kernel.ids import parse_bbid
from catalog.revisions.entity_types import EntityType

logger = structlog.get_logger()

Extractor = Callable[[dict[str, Any]], list[Any]]


def _field(name: str) -> Extractor:
    return lambda info: [info.get(name)]


def _list_field(name: str) -> Extractor:
    return lambda info: list(info.get(name) or [])


BROWSE_ROOTS: dict[EntityType, tuple[EntityType, ...]] = {
    EntityType.PUBLISHER: (
        EntityType.AUTHOR,
        EntityType.EDITION,
        EntityType.PUBLISHER,
        EntityType.WORK,
    ),
    EntityType.AUTHOR: (
        EntityType.AUTHOR,
        EntityType.EDITION,
        EntityType.EDITION_GROUP,
        EntityType.PUBLISHER,
        EntityType.WORK,
    ),
    EntityType.WORK: (
        EntityType.AUTHOR,
        EntityType.EDITION,
        EntityType.WORK,
    ),
    EntityType.EDITION: (
        EntityType.AUTHOR,
        EntityType.EDITION,
        EntityType.EDITION_GROUP,
        EntityType.PUBLISHER,
        EntityType.WORK,
    ),
    EntityType.EDITION_GROUP: (
        EntityType.AUTHOR,
        EntityType.EDITION,
        EntityType.EDITION_GROUP,
        EntityType.PUBLISHER,
        EntityType.WORK,
    ),
}

BROWSE_FILTERS: dict[EntityType, dict[str, Extractor]] = {
    EntityType.PUBLISHER: {"type": _field("type"), "area": _field("area")},
    EntityType.AUTHOR: {
        "type": _field("type"),
        "gender": _field("gender"),
        "area": _field("area"),
    },
    EntityType.WORK: {"type": _field("type"), "language": _list_field("languages")},
    EntityType.EDITION: {
        "format": _field("editionFormat"),
        "status": _field("status"),
        "language": _list_field("languages"),
    },
    EntityType.EDITION_GROUP: {"type": _field("type")},
}

BROWSE_RESULT_KEYS: dict[EntityType, str] = {
    EntityType.PUBLISHER: "publishers",
    EntityType.AUTHOR: "authors",
    EntityType.WORK: "works",
    EntityType.EDITION: "editions",
    EntityType.EDITION_GROUP: "editionGroups",
}


@dataclass(frozen=True, slots=True)
class BrowseQuery:
    root_type: EntityType
    bbid: UUID
    filters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_params(
        cls,
        params: Iterable[tuple[str, str]],
        browsed_type: EntityType,
    ) -> "BrowseQuery":
        """Normalize raw query parameters.

        Keys are matched case-insensitively. Unknown keys are ignored.
        """
        accepted = {root.slug: root for root in BROWSE_ROOTS[browsed_type]}
        filter_names = BROWSE_FILTERS[browsed_type]

        roots: list[tuple[EntityType, str]] = []
        filters: dict[str, str] = {}
        for raw_key, value in params:
            key = raw_key.strip().lower()
            if key in accepted:
                roots.append((accepted[key], value.strip()))
            elif key in filter_names and key not in filters:
                filters[key] = value.strip()

        if not roots:
            raise ValidationError(
                message="No valid browse parameter passed",
                code="browse.missing_root",
                meta={"accepted": sorted(accepted)},
            )
        if len(roots) > 1:
            raise ValidationError(
                message="Multiple browsed entities passed in parameters",
                code="browse.conflicting_roots",
                meta={"roots": [root.slug for root, _ in roots]},
            )

        root_type, raw_bbid = roots[0]
        return cls(root_type=root_type, bbid=parse_bbid(raw_bbid), filters=filters)


def matches_filters(
    info: dict[str, Any],
    filters: dict[str, str],
    browsed_type: EntityType,
) -> bool:
    extractors = BROWSE_FILTERS[browsed_type]
    for name, wanted in filters.items():
        values = extractors[name](info)
        if not any(value is not None and str(value).lower() == wanted.lower() for value in values):
            return False
    return True


class _BrowsedEntities:
    """Related entities keyed by BBID, in first-seen order."""

    def __init__(self, session: AsyncSession, query: BrowseQuery, browsed_type: EntityType):
        self._session = session
        self._query = query
        self._browsed_type = browsed_type
        self._lookups = LookupResolver(session)
        self._entries: dict[UUID, dict[str, Any] | None] = {}

    async def add(self, bbid: UUID, relationship: dict[str, Any] | None) -> None:
        if bbid not in self._entries:
            self._entries[bbid] = await self._load(bbid)
        entry = self._entries[bbid]
        if entry is not None and relationship is not None:
            entry["relationships"].append(relationship)

    async def _load(self, bbid: UUID) -> dict[str, Any] | None:
        try:
            related = await load_entity(
                self._session,
                bbid,
                entity_type=self._browsed_type,
                relations=BASIC_RELATIONS,
            )
        except NotFoundError:
            # Deleted since the relationship was recorded
            return None
        info = await get_basic_info(related, self._lookups)
        if not matches_filters(info, self._query.filters, self._browsed_type):
            return None
        return {"entity": info, "relationships": []}

    def results(self) -> list[dict[str, Any]]:
        return [entry for entry in self._entries.values() if entry is not None]


async def browse_related(
    session: AsyncSession,
    query: BrowseQuery,
    browsed_type: EntityType,
) -> dict[str, Any]:
    root = await load_entity(
        session,
        query.bbid,
        entity_type=query.root_type,
        relations=RELATIONSHIP_RELATIONS,
        not_found_message=f"{query.root_type.label} not found",
    )

    browsed = _BrowsedEntities(session, query, browsed_type)
    for relationship, other in _related_ends(root):
        if other.type != browsed_type.value:
            continue
        await browsed.add(
            other.bbid,
            {"relationshipTypeID": relationship.type_id, "relationshipType": relationship.type.label},
        )

    # Editions reference their publishers and edition group by property
    # rather than by relationship.
    if root.entity_type is EntityType.EDITION:
        for linked in root.properties.linked_bbids(browsed_type):
            await browsed.add(UUID(linked), None)

    results = browsed.results()
    logger.debug(
        "Browse resolved",
        root_type=query.root_type.value,
        bbid=str(query.bbid),
        browsed_type=browsed_type.value,
        count=len(results),
    )
    return {"bbid": str(query.bbid), BROWSE_RESULT_KEYS[browsed_type]: results}


def _related_ends(root: LoadedEntity):
    relationship_set = root.data.relationship_set
    if relationship_set is None:
        return
    for relationship in relationship_set.relationships:
        forward = relationship.source_bbid == root.bbid
        yield relationship, relationship.target if forward else relationship.source
