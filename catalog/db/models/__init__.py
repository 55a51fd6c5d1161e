"""Database models."""

from catalog.db.models.base import Base
from catalog.db.models.lookups import (
    Area,
    IdentifierType,
    Language,
    TypeLabel,
)
from catalog.db.models.sets import (
    Alias,
    AliasSet,
    Identifier,
    IdentifierSet,
    alias_set_alias,
    identifier_set_identifier,
)
from catalog.db.models.revisions import (
    Annotation,
    Disambiguation,
    Editor,
    Note,
    Revision,
    revision_parent,
)
from catalog.db.models.entities import (
    Entity,
    EntityData,
    EntityHeader,
    EntityRevision,
    Relationship,
    RelationshipSet,
    RelationshipType,
    relationship_set_relationship,
)

__all__ = [
    "Base",
    "Area",
    "IdentifierType",
    "Language",
    "TypeLabel",
    "Alias",
    "AliasSet",
    "Identifier",
    "IdentifierSet",
    "alias_set_alias",
    "identifier_set_identifier",
    "Annotation",
    "Disambiguation",
    "Editor",
    "Note",
    "Revision",
    "revision_parent",
    "Entity",
    "EntityData",
    "EntityHeader",
    "EntityRevision",
    "Relationship",
    "RelationshipSet",
    "RelationshipType",
    "relationship_set_relationship",
]
