"""
Entity Loader

Resolves a BBID to the entity's current data row with the requested
relations eagerly loaded. Relations are given as dotted attribute paths on
EntityData, e.g. "alias_set.default_alias.language".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog.db.models import Entity, EntityData, EntityHeader, EntityRevision
from catalog.db.revision_store import properties_from_data
from catalog.kernel.errors import NotFoundError
from catalog.kernel.ids import parse_bbid
from catalog.revisions.entity_types import EntityType
from catalog.revisions.properties import EntityProperties

logger = structlog.get_logger()

ALIAS_RELATIONS = ("alias_set.aliases.language", "alias_set.default_alias.language")
IDENTIFIER_RELATIONS = ("identifier_set.identifiers.type",)
RELATIONSHIP_RELATIONS = (
    "relationship_set.relationships.type",
    "relationship_set.relationships.source",
    "relationship_set.relationships.target",
)
BASIC_RELATIONS = ("alias_set.default_alias.language", "disambiguation")


@dataclass(slots=True)
class LoadedEntity:
    bbid: UUID
    entity_type: EntityType
    revision_id: int
    data: EntityData
    properties: EntityProperties


EntityLoader = Callable[[AsyncSession, str], Awaitable[LoadedEntity]]


def relation_options(paths: Sequence[str]) -> list:
    """Build selectinload chains for dotted relation paths rooted at EntityData."""
    options = []
    for path in paths:
        model = EntityData
        option = None
        for name in path.split("."):
            attribute = getattr(model, name)
            option = selectinload(attribute) if option is None else option.selectinload(attribute)
            model = attribute.property.mapper.class_
        options.append(option)
    return options


async def load_entity(
    session: AsyncSession,
    bbid: UUID,
    *,
    entity_type: EntityType | None = None,
    relations: Sequence[str] = (),
    not_found_message: str = "Entity not found",
) -> LoadedEntity:
    """Load the master revision data of `bbid`.

    Raises NotFoundError when the BBID is unknown, deleted, or (when
    `entity_type` is given) of another type.
    """
    result = await session.execute(
        select(Entity.type, EntityHeader.master_revision_id, EntityRevision.data_id)
        .join(Entity, Entity.bbid == EntityHeader.bbid)
        .join(
            EntityRevision,
            and_(
                EntityRevision.id == EntityHeader.master_revision_id,
                EntityRevision.bbid == EntityHeader.bbid,
            ),
        )
        .where(EntityHeader.bbid == bbid)
    )
    row = result.one_or_none()
    if row is None or row.data_id is None:
        raise NotFoundError(message=not_found_message, meta={"bbid": str(bbid)})

    actual_type = EntityType(row.type)
    if entity_type is not None and actual_type is not entity_type:
        raise NotFoundError(message=not_found_message, meta={"bbid": str(bbid)})

    data_result = await session.execute(
        select(EntityData)
        .options(*relation_options(relations))
        .where(EntityData.id == row.data_id)
    )
    data = data_result.scalar_one()

    return LoadedEntity(
        bbid=bbid,
        entity_type=actual_type,
        revision_id=row.master_revision_id,
        data=data,
        properties=properties_from_data(actual_type, data),
    )


def make_entity_loader(
    entity_type: EntityType | None,
    relations: Sequence[str],
    not_found_message: str,
) -> EntityLoader:
    """Return a loader bound to one entity type and relation list.

    The returned callable validates the raw BBID first, so a malformed
    identifier is a 400 before any query runs.
    """

    async def loader(session: AsyncSession, raw_bbid: str) -> LoadedEntity:
        bbid = parse_bbid(raw_bbid)
        entity = await load_entity(
            session,
            bbid,
            entity_type=entity_type,
            relations=relations,
            not_found_message=not_found_message,
        )
        logger.debug(
            "Entity loaded",
            bbid=str(bbid),
            entity_type=entity.entity_type.value,
            revision_id=entity.revision_id,
        )
        return entity

    return loader
