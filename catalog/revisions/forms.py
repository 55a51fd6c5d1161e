"""Form submissions accepted by the revision engine.

Bodies use camelCase keys; snake_case names are accepted too.
"""

from __future__ import annotations

from typing import Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from catalog.kernel.errors import ValidationError
from catalog.revisions.entity_types import EntityType
from catalog.revisions.records import AliasKey, AliasRecord, IdentifierRecord

# BookBrainz-style partial dates: YYYY, YYYY-MM or YYYY-MM-DD, optionally negative.
PARTIAL_DATE_PATTERN = r"^-?\d{1,6}(-\d{2}(-\d{2})?)?$"


class FormModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AliasForm(FormModel):
    id: int | None = None
    name: str = Field(min_length=1)
    sort_name: str = Field(min_length=1)
    language_id: int | None = None
    primary: bool = False
    default: bool = False

    def to_record(self) -> AliasRecord:
        return AliasRecord(
            id=self.id,
            name=self.name,
            sort_name=self.sort_name,
            language_id=self.language_id,
            primary=self.primary,
        )


class IdentifierForm(FormModel):
    id: int | None = None
    value: str = Field(min_length=1)
    type_id: int

    def to_record(self) -> IdentifierRecord:
        return IdentifierRecord(id=self.id, type_id=self.type_id, value=self.value)


class EntityForm(FormModel):
    entity_type: ClassVar[EntityType]

    aliases: list[AliasForm] = Field(default_factory=list)
    identifiers: list[IdentifierForm] = Field(default_factory=list)
    annotation: str | None = None
    disambiguation: str | None = None
    note: str | None = None

    def alias_records(self) -> list[AliasRecord]:
        return [alias.to_record() for alias in self.aliases]

    def identifier_records(self) -> list[IdentifierRecord]:
        return [identifier.to_record() for identifier in self.identifiers]

    def default_alias_key(self) -> AliasKey | None:
        """Return the key of the alias flagged `default`.

        A non-empty alias list must flag exactly one alias.
        """
        defaults = [alias for alias in self.aliases if alias.default]
        if len(defaults) > 1:
            raise ValidationError(
                message="Only one alias may be marked as default",
                code="form.multiple_default_aliases",
            )
        if not defaults:
            if self.aliases:
                raise ValidationError(
                    message="One alias must be marked as default",
                    code="form.missing_default_alias",
                )
            return None
        return defaults[0].to_record().key

    def derived_properties(self) -> dict[str, Any]:
        """Type-specific properties carried by this form."""
        return {}


def _sorted_unique(values: list[Any]) -> tuple[Any, ...]:
    return tuple(sorted(set(values)))


class PublisherForm(EntityForm):
    entity_type: ClassVar[EntityType] = EntityType.PUBLISHER

    type_id: int | None = None
    area_id: int | None = None
    begin_date: str | None = Field(default=None, pattern=PARTIAL_DATE_PATTERN)
    end_date: str | None = Field(default=None, pattern=PARTIAL_DATE_PATTERN)
    ended: bool = False

    def derived_properties(self) -> dict[str, Any]:
        return {
            "type_id": self.type_id,
            "area_id": self.area_id,
            "begin_date": self.begin_date,
            "end_date": self.end_date,
            "ended": self.ended,
        }


class AuthorForm(EntityForm):
    entity_type: ClassVar[EntityType] = EntityType.AUTHOR

    type_id: int | None = None
    gender_id: int | None = None
    area_id: int | None = None
    begin_date: str | None = Field(default=None, pattern=PARTIAL_DATE_PATTERN)
    end_date: str | None = Field(default=None, pattern=PARTIAL_DATE_PATTERN)
    ended: bool = False

    def derived_properties(self) -> dict[str, Any]:
        return {
            "type_id": self.type_id,
            "gender_id": self.gender_id,
            "area_id": self.area_id,
            "begin_date": self.begin_date,
            "end_date": self.end_date,
            "ended": self.ended,
        }


class WorkForm(EntityForm):
    entity_type: ClassVar[EntityType] = EntityType.WORK

    type_id: int | None = None
    language_ids: list[int] = Field(default_factory=list)

    def derived_properties(self) -> dict[str, Any]:
        return {
            "type_id": self.type_id,
            "language_ids": _sorted_unique(self.language_ids),
        }


class EditionForm(EntityForm):
    entity_type: ClassVar[EntityType] = EntityType.EDITION

    edition_group_bbid: UUID | None = None
    format_id: int | None = None
    status_id: int | None = None
    pages: int | None = Field(default=None, ge=0)
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)
    depth: int | None = Field(default=None, ge=0)
    weight: int | None = Field(default=None, ge=0)
    language_ids: list[int] = Field(default_factory=list)
    publisher_bbids: list[UUID] = Field(default_factory=list)

    def derived_properties(self) -> dict[str, Any]:
        return {
            "edition_group_bbid": str(self.edition_group_bbid) if self.edition_group_bbid else None,
            "format_id": self.format_id,
            "status_id": self.status_id,
            "pages": self.pages,
            "width": self.width,
            "height": self.height,
            "depth": self.depth,
            "weight": self.weight,
            "language_ids": _sorted_unique(self.language_ids),
            "publisher_bbids": _sorted_unique([str(bbid) for bbid in self.publisher_bbids]),
        }


class EditionGroupForm(EntityForm):
    entity_type: ClassVar[EntityType] = EntityType.EDITION_GROUP

    type_id: int | None = None

    def derived_properties(self) -> dict[str, Any]:
        return {"type_id": self.type_id}


class DeleteForm(FormModel):
    note: str | None = None

    @field_validator("note")
    @classmethod
    def _blank_note_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


FORM_BY_TYPE: dict[EntityType, type[EntityForm]] = {
    form.entity_type: form
    for form in (PublisherForm, AuthorForm, WorkForm, EditionForm, EditionGroupForm)
}
