"""
Entity Models

An entity is a BBID plus a type tag. Its header points at the master
revision; the matching entity_revision row points at an immutable
entity_data row (NULL for a deleted entity).
"""

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, Table
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from catalog.db.models.base import Base

relationship_set_relationship = Table(
    "relationship_set__relationship",
    Base.metadata,
    Column("set_id", Integer, ForeignKey("relationship_set.id"), primary_key=True),
    Column("relationship_id", Integer, ForeignKey("relationship.id"), primary_key=True),
)


class Entity(Base):
    __tablename__ = "entity"

    bbid = Column(UUID(as_uuid=True), primary_key=True)
    type = Column(String(20), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Entity {self.type}:{self.bbid}>"


class EntityHeader(Base):
    __tablename__ = "entity_header"

    bbid = Column(UUID(as_uuid=True), ForeignKey("entity.bbid"), primary_key=True)
    master_revision_id = Column(Integer, ForeignKey("revision.id"), nullable=False)

    entity = relationship("Entity")


class EntityData(Base):
    """Immutable state of an entity as of one revision."""

    __tablename__ = "entity_data"

    id = Column(Integer, primary_key=True)
    type = Column(String(20), nullable=False)

    alias_set_id = Column(Integer, ForeignKey("alias_set.id"), nullable=False)
    identifier_set_id = Column(Integer, ForeignKey("identifier_set.id"), nullable=False)
    annotation_id = Column(Integer, ForeignKey("annotation.id"), nullable=True)
    disambiguation_id = Column(Integer, ForeignKey("disambiguation.id"), nullable=True)
    relationship_set_id = Column(Integer, ForeignKey("relationship_set.id"), nullable=True)

    # Type-specific versionable properties, serialized from the typed records
    # in catalog.revisions.properties.
    properties = Column(JSON, nullable=False, default=dict)

    alias_set = relationship("AliasSet")
    identifier_set = relationship("IdentifierSet")
    annotation = relationship("Annotation")
    disambiguation = relationship("Disambiguation")
    relationship_set = relationship("RelationshipSet")


class EntityRevision(Base):
    __tablename__ = "entity_revision"

    id = Column(Integer, ForeignKey("revision.id"), primary_key=True)
    bbid = Column(UUID(as_uuid=True), ForeignKey("entity.bbid"), primary_key=True)
    data_id = Column(Integer, ForeignKey("entity_data.id"), nullable=True)

    revision = relationship("Revision")
    data = relationship("EntityData")


class RelationshipType(Base):
    __tablename__ = "relationship_type"

    id = Column(Integer, primary_key=True)
    label = Column(String(255), nullable=False)
    link_phrase = Column(String(255), nullable=False)
    reverse_link_phrase = Column(String(255), nullable=False)
    source_entity_type = Column(String(20), nullable=False)
    target_entity_type = Column(String(20), nullable=False)


class Relationship(Base):
    __tablename__ = "relationship"

    id = Column(Integer, primary_key=True)
    type_id = Column(Integer, ForeignKey("relationship_type.id"), nullable=False)
    source_bbid = Column(UUID(as_uuid=True), ForeignKey("entity.bbid"), nullable=False, index=True)
    target_bbid = Column(UUID(as_uuid=True), ForeignKey("entity.bbid"), nullable=False, index=True)

    type = relationship("RelationshipType")
    source = relationship("Entity", foreign_keys=[source_bbid])
    target = relationship("Entity", foreign_keys=[target_bbid])


class RelationshipSet(Base):
    __tablename__ = "relationship_set"

    id = Column(Integer, primary_key=True)

    relationships = relationship(
        "Relationship", secondary=relationship_set_relationship, order_by="Relationship.id"
    )
