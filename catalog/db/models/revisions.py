"""
Revision Models

Revisions, their parentage, edit notes, editors, and the singleton
versioned text fields (annotation, disambiguation).
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from catalog.db.models.base import Base

revision_parent = Table(
    "revision_parent",
    Base.metadata,
    Column("parent_id", Integer, ForeignKey("revision.id"), primary_key=True),
    Column("child_id", Integer, ForeignKey("revision.id"), primary_key=True),
)


class Editor(Base):
    __tablename__ = "editor"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False, unique=True)
    revisions_applied = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Revision(Base):
    """An immutable record of one accepted edit."""

    __tablename__ = "revision"

    id = Column(Integer, primary_key=True)
    author_id = Column(Integer, ForeignKey("editor.id"), nullable=False, index=True)
    entity_type = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    author = relationship("Editor")
    notes = relationship("Note", back_populates="revision", order_by="Note.id")
    parents = relationship(
        "Revision",
        secondary=revision_parent,
        primaryjoin=id == revision_parent.c.child_id,
        secondaryjoin=id == revision_parent.c.parent_id,
    )

    def __repr__(self) -> str:
        return f"<Revision {self.id} by {self.author_id}>"


class Note(Base):
    __tablename__ = "note"

    id = Column(Integer, primary_key=True)
    author_id = Column(Integer, ForeignKey("editor.id"), nullable=False)
    revision_id = Column(Integer, ForeignKey("revision.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    posted_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    revision = relationship("Revision", back_populates="notes")


class Annotation(Base):
    __tablename__ = "annotation"

    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False)
    # Stamped after the owning revision exists, in the same transaction.
    last_revision_id = Column(Integer, ForeignKey("revision.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Disambiguation(Base):
    __tablename__ = "disambiguation"

    id = Column(Integer, primary_key=True)
    comment = Column(Text, nullable=False)
