"""Entity type tags and their URL slugs."""

from __future__ import annotations

from enum import Enum


class EntityType(str, Enum):
    PUBLISHER = "Publisher"
    AUTHOR = "Author"
    WORK = "Work"
    EDITION = "Edition"
    EDITION_GROUP = "EditionGroup"

    @property
    def slug(self) -> str:
        return _SLUGS[self]

    @property
    def label(self) -> str:
        return "Edition Group" if self is EntityType.EDITION_GROUP else self.value

    @classmethod
    def from_slug(cls, slug: str) -> "EntityType":
        for entity_type, candidate in _SLUGS.items():
            if candidate == slug:
                return entity_type
        raise ValueError(f"Unknown entity type slug: {slug!r}")


_SLUGS = {
    EntityType.PUBLISHER: "publisher",
    EntityType.AUTHOR: "author",
    EntityType.WORK: "work",
    EntityType.EDITION: "edition",
    EntityType.EDITION_GROUP: "edition-group",
}
