"""Read side: entity lookup, formatting and browse requests."""

from catalog.entities.loader import LoadedEntity, load_entity, make_entity_loader

__all__ = ["LoadedEntity", "load_entity", "make_entity_loader"]
