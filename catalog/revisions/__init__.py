"""Entity revisioning: set diffing, versioned set building and the revision engine."""

from catalog.revisions.engine import RevisionEngine
from catalog.revisions.entity_types import EntityType

__all__ = ["RevisionEngine", "EntityType"]
