"""
Versioned Set Models

Alias sets and identifier sets are immutable snapshots. Items are shared
between sets through association tables, so an unchanged alias keeps its id
when a later revision builds a new set around it.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Table, Text
from sqlalchemy.orm import relationship

from catalog.db.models.base import Base

alias_set_alias = Table(
    "alias_set__alias",
    Base.metadata,
    Column("set_id", Integer, ForeignKey("alias_set.id"), primary_key=True),
    Column("alias_id", Integer, ForeignKey("alias.id"), primary_key=True),
)

identifier_set_identifier = Table(
    "identifier_set__identifier",
    Base.metadata,
    Column("set_id", Integer, ForeignKey("identifier_set.id"), primary_key=True),
    Column("identifier_id", Integer, ForeignKey("identifier.id"), primary_key=True),
)


class Alias(Base):
    __tablename__ = "alias"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    sort_name = Column(Text, nullable=False)
    language_id = Column(Integer, ForeignKey("language.id"), nullable=True)
    primary = Column(Boolean, nullable=False, default=False)

    language = relationship("Language")

    def __repr__(self) -> str:
        return f"<Alias {self.id}:{self.name}>"


class AliasSet(Base):
    __tablename__ = "alias_set"

    id = Column(Integer, primary_key=True)
    default_alias_id = Column(Integer, ForeignKey("alias.id"), nullable=True)

    default_alias = relationship("Alias", foreign_keys=[default_alias_id])
    aliases = relationship("Alias", secondary=alias_set_alias, order_by="Alias.id")


class Identifier(Base):
    __tablename__ = "identifier"

    id = Column(Integer, primary_key=True)
    type_id = Column(Integer, ForeignKey("identifier_type.id"), nullable=False)
    value = Column(Text, nullable=False)

    type = relationship("IdentifierType")


class IdentifierSet(Base):
    __tablename__ = "identifier_set"

    id = Column(Integer, primary_key=True)

    identifiers = relationship(
        "Identifier", secondary=identifier_set_identifier, order_by="Identifier.id"
    )
