"""
Entity API Routes

One route group per entity type (publisher, author, work, edition,
edition-group) providing:
- Lookup of basic info, aliases, identifiers and relationships by BBID
- Browse of entities related to another entity
- Revision history
- Create, edit and delete through the revision engine
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.api.dependencies import get_editor_id, get_read_session, get_revision_engine
from catalog.entities.browse import BrowseQuery, browse_related
from catalog.entities.formatters import (
    LookupResolver,
    format_alias_set,
    format_identifier_set,
    format_revision,
    get_basic_info,
    get_entity_aliases,
    get_entity_identifiers,
    get_entity_relationships,
)
from catalog.entities.loader import (
    ALIAS_RELATIONS,
    BASIC_RELATIONS,
    IDENTIFIER_RELATIONS,
    RELATIONSHIP_RELATIONS,
    make_entity_loader,
)
from catalog.kernel.ids import parse_bbid
from catalog.revisions.engine import RevisionEngine
from catalog.revisions.entity_types import EntityType
from catalog.revisions.forms import FORM_BY_TYPE, DeleteForm
from catalog.revisions.records import RevisionResult


def format_revision_result(result: RevisionResult) -> dict[str, Any]:
    return {
        "bbid": str(result.bbid),
        "type": result.entity_type.value,
        "revisionId": result.revision_id,
        "parentRevisionId": result.parent_revision_id,
        "changedFields": list(result.changed_fields),
        "deleted": result.properties is None,
        "aliases": format_alias_set(result.alias_set),
        "identifiers": format_identifier_set(result.identifier_set),
    }


def build_entity_router(entity_type: EntityType) -> APIRouter:
    """Build the route group for one entity type."""
    router = APIRouter(prefix=f"/{entity_type.slug}", tags=[entity_type.label])
    not_found = f"{entity_type.label} not found"
    form_class = FORM_BY_TYPE[entity_type]

    load_basic = make_entity_loader(entity_type, BASIC_RELATIONS, not_found)
    load_aliases = make_entity_loader(entity_type, ALIAS_RELATIONS, not_found)
    load_identifiers = make_entity_loader(entity_type, IDENTIFIER_RELATIONS, not_found)
    load_relationships = make_entity_loader(entity_type, RELATIONSHIP_RELATIONS, not_found)

    # =========================================================================
    # Lookup
    # =========================================================================

    @router.get("/{bbid}")
    async def get_entity(bbid: str, session: AsyncSession = Depends(get_read_session)):
        """Basic information of the entity."""
        entity = await load_basic(session, bbid)
        return await get_basic_info(entity, LookupResolver(session))

    @router.get("/{bbid}/aliases")
    async def get_aliases(bbid: str, session: AsyncSession = Depends(get_read_session)):
        entity = await load_aliases(session, bbid)
        return get_entity_aliases(entity)

    @router.get("/{bbid}/identifiers")
    async def get_identifiers(bbid: str, session: AsyncSession = Depends(get_read_session)):
        entity = await load_identifiers(session, bbid)
        return get_entity_identifiers(entity)

    @router.get("/{bbid}/relationships")
    async def get_relationships(bbid: str, session: AsyncSession = Depends(get_read_session)):
        entity = await load_relationships(session, bbid)
        return get_entity_relationships(entity)

    # =========================================================================
    # Browse
    # =========================================================================

    @router.get("")
    async def browse(request: Request, session: AsyncSession = Depends(get_read_session)):
        """Entities of this type related to the entity named in the query."""
        query = BrowseQuery.from_params(request.query_params.multi_items(), entity_type)
        return await browse_related(session, query, entity_type)

    # =========================================================================
    # Revisions
    # =========================================================================

    @router.get("/{bbid}/revisions")
    async def list_revisions(bbid: str, engine: RevisionEngine = Depends(get_revision_engine)):
        parsed = parse_bbid(bbid)
        revisions = await engine.list_revisions(entity_type, parsed)
        return {"bbid": str(parsed), "revisions": [format_revision(r) for r in revisions]}

    @router.post("", status_code=201)
    async def create_entity(
        form: form_class,  # type: ignore[valid-type]
        editor_id: int = Depends(get_editor_id),
        engine: RevisionEngine = Depends(get_revision_engine),
    ):
        result = await engine.create_entity(entity_type, form, editor_id=editor_id)
        return format_revision_result(result)

    @router.post("/{bbid}/edit")
    async def edit_entity(
        bbid: str,
        form: form_class,  # type: ignore[valid-type]
        editor_id: int = Depends(get_editor_id),
        engine: RevisionEngine = Depends(get_revision_engine),
    ):
        result = await engine.edit_entity(entity_type, parse_bbid(bbid), form, editor_id=editor_id)
        return format_revision_result(result)

    @router.post("/{bbid}/delete")
    async def delete_entity(
        bbid: str,
        form: DeleteForm | None = Body(default=None),
        editor_id: int = Depends(get_editor_id),
        engine: RevisionEngine = Depends(get_revision_engine),
    ):
        result = await engine.delete_entity(
            entity_type,
            parse_bbid(bbid),
            editor_id=editor_id,
            note=form.note if form else None,
        )
        return format_revision_result(result)

    return router


routers = [build_entity_router(entity_type) for entity_type in EntityType]
