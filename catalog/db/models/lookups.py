"""
Lookup Tables

Reference data the revision engine points at by id: languages, areas,
identifier types and categorized type labels.
"""

from sqlalchemy import Column, Integer, String, Text, UniqueConstraint

from catalog.db.models.base import Base


class Language(Base):
    __tablename__ = "language"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    iso_code = Column(String(8), nullable=True, unique=True)

    def __repr__(self) -> str:
        return f"<Language {self.name}>"


class Area(Base):
    __tablename__ = "area"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)


class IdentifierType(Base):
    __tablename__ = "identifier_type"

    id = Column(Integer, primary_key=True)
    label = Column(Text, nullable=False)
    entity_type = Column(String(20), nullable=False, index=True)


class TypeLabel(Base):
    """
    Categorized label used for entity-specific enumerations.

    Categories: publisher_type, author_type, work_type, edition_group_type,
    edition_format, edition_status, gender.
    """

    __tablename__ = "type_label"

    id = Column(Integer, primary_key=True)
    category = Column(String(40), nullable=False, index=True)
    label = Column(Text, nullable=False)

    __table_args__ = (UniqueConstraint("category", "label", name="type_label_category_label_uq"),)
