"""Create catalog schema.

Revision ID: 001_create_catalog_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_create_catalog_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # Lookups
    # ==========================================================================
    op.create_table(
        "language",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("iso_code", sa.String(8), nullable=True, unique=True),
    )
    op.create_table(
        "area",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
    )
    op.create_table(
        "identifier_type",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("label", sa.Text, nullable=False),
        sa.Column("entity_type", sa.String(20), nullable=False),
    )
    op.create_index("ix_identifier_type_entity_type", "identifier_type", ["entity_type"])
    op.create_table(
        "type_label",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("category", sa.String(40), nullable=False),
        sa.Column("label", sa.Text, nullable=False),
        sa.UniqueConstraint("category", "label", name="type_label_category_label_uq"),
    )
    op.create_index("ix_type_label_category", "type_label", ["category"])

    # ==========================================================================
    # Editors and revisions
    # ==========================================================================
    op.create_table(
        "editor",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False, unique=True),
        sa.Column("revisions_applied", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "revision",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("author_id", sa.Integer, sa.ForeignKey("editor.id"), nullable=False),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_revision_author_id", "revision", ["author_id"])
    op.create_table(
        "revision_parent",
        sa.Column("parent_id", sa.Integer, sa.ForeignKey("revision.id"), primary_key=True),
        sa.Column("child_id", sa.Integer, sa.ForeignKey("revision.id"), primary_key=True),
    )
    op.create_table(
        "note",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("author_id", sa.Integer, sa.ForeignKey("editor.id"), nullable=False),
        sa.Column("revision_id", sa.Integer, sa.ForeignKey("revision.id"), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_note_revision_id", "note", ["revision_id"])

    # ==========================================================================
    # Singleton versioned text fields
    # ==========================================================================
    op.create_table(
        "annotation",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("last_revision_id", sa.Integer, sa.ForeignKey("revision.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "disambiguation",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("comment", sa.Text, nullable=False),
    )

    # ==========================================================================
    # Versioned sets
    # ==========================================================================
    op.create_table(
        "alias",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("sort_name", sa.Text, nullable=False),
        sa.Column("language_id", sa.Integer, sa.ForeignKey("language.id"), nullable=True),
        sa.Column("primary", sa.Boolean, nullable=False, server_default="false"),
    )
    op.create_table(
        "alias_set",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("default_alias_id", sa.Integer, sa.ForeignKey("alias.id"), nullable=True),
    )
    op.create_table(
        "alias_set__alias",
        sa.Column("set_id", sa.Integer, sa.ForeignKey("alias_set.id"), primary_key=True),
        sa.Column("alias_id", sa.Integer, sa.ForeignKey("alias.id"), primary_key=True),
    )
    op.create_table(
        "identifier",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("type_id", sa.Integer, sa.ForeignKey("identifier_type.id"), nullable=False),
        sa.Column("value", sa.Text, nullable=False),
    )
    op.create_table(
        "identifier_set",
        sa.Column("id", sa.Integer, primary_key=True),
    )
    op.create_table(
        "identifier_set__identifier",
        sa.Column("set_id", sa.Integer, sa.ForeignKey("identifier_set.id"), primary_key=True),
        sa.Column("identifier_id", sa.Integer, sa.ForeignKey("identifier.id"), primary_key=True),
    )

    # ==========================================================================
    # Entities and relationships
    # ==========================================================================
    op.create_table(
        "entity",
        sa.Column("bbid", UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.String(20), nullable=False),
    )
    op.create_index("ix_entity_type", "entity", ["type"])
    op.create_table(
        "relationship_type",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("link_phrase", sa.String(255), nullable=False),
        sa.Column("reverse_link_phrase", sa.String(255), nullable=False),
        sa.Column("source_entity_type", sa.String(20), nullable=False),
        sa.Column("target_entity_type", sa.String(20), nullable=False),
    )
    op.create_table(
        "relationship",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("type_id", sa.Integer, sa.ForeignKey("relationship_type.id"), nullable=False),
        sa.Column("source_bbid", UUID(as_uuid=True), sa.ForeignKey("entity.bbid"), nullable=False),
        sa.Column("target_bbid", UUID(as_uuid=True), sa.ForeignKey("entity.bbid"), nullable=False),
    )
    op.create_index("ix_relationship_source_bbid", "relationship", ["source_bbid"])
    op.create_index("ix_relationship_target_bbid", "relationship", ["target_bbid"])
    op.create_table(
        "relationship_set",
        sa.Column("id", sa.Integer, primary_key=True),
    )
    op.create_table(
        "relationship_set__relationship",
        sa.Column("set_id", sa.Integer, sa.ForeignKey("relationship_set.id"), primary_key=True),
        sa.Column("relationship_id", sa.Integer, sa.ForeignKey("relationship.id"), primary_key=True),
    )
    op.create_table(
        "entity_data",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("alias_set_id", sa.Integer, sa.ForeignKey("alias_set.id"), nullable=False),
        sa.Column("identifier_set_id", sa.Integer, sa.ForeignKey("identifier_set.id"), nullable=False),
        sa.Column("annotation_id", sa.Integer, sa.ForeignKey("annotation.id"), nullable=True),
        sa.Column("disambiguation_id", sa.Integer, sa.ForeignKey("disambiguation.id"), nullable=True),
        sa.Column("relationship_set_id", sa.Integer, sa.ForeignKey("relationship_set.id"), nullable=True),
        sa.Column("properties", sa.JSON, nullable=False, server_default="{}"),
    )
    op.create_table(
        "entity_revision",
        sa.Column("id", sa.Integer, sa.ForeignKey("revision.id"), primary_key=True),
        sa.Column("bbid", UUID(as_uuid=True), sa.ForeignKey("entity.bbid"), primary_key=True),
        sa.Column("data_id", sa.Integer, sa.ForeignKey("entity_data.id"), nullable=True),
    )
    op.create_table(
        "entity_header",
        sa.Column("bbid", UUID(as_uuid=True), sa.ForeignKey("entity.bbid"), primary_key=True),
        sa.Column("master_revision_id", sa.Integer, sa.ForeignKey("revision.id"), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "entity_header",
        "entity_revision",
        "entity_data",
        "relationship_set__relationship",
        "relationship_set",
        "relationship",
        "relationship_type",
        "entity",
        "identifier_set__identifier",
        "identifier_set",
        "identifier",
        "alias_set__alias",
        "alias_set",
        "alias",
        "disambiguation",
        "annotation",
        "note",
        "revision_parent",
        "revision",
        "editor",
        "type_label",
        "identifier_type",
        "area",
        "language",
    ):
        op.drop_table(table)
