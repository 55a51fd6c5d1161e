"""Diffing of versioned set members.

Items are compared on a projection of their comparable fields. Membership
change is decided by ids, but reuse is decided by content: an item whose
projection matches an old item is unchanged and the old item is the one
that gets reattached to the new set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Iterable, Protocol, Sequence, TypeVar


class SetItem(Protocol):
    @property
    def id(self) -> int | None: ...


T = TypeVar("T", bound=SetItem)


@dataclass(frozen=True, slots=True)
class SetDiff(Generic[T]):
    changed: bool
    unchanged: tuple[T, ...]
    new_or_updated: tuple[T, ...]
    # Old item matched by each entry of `unchanged`, index for index.
    retained: tuple[T, ...]
    deleted: tuple[T, ...]


def project(item: Any, compare_fields: Iterable[str]) -> tuple[Any, ...]:
    return tuple(getattr(item, name) for name in compare_fields)


def set_has_changed(
    old_items: Sequence[T],
    new_items: Sequence[T],
    compare_fields: Sequence[str],
) -> bool:
    old_ids = {item.id for item in old_items}
    new_ids = {item.id for item in new_items}

    # Items deleted (old not in new) or added (new not in old).
    if old_ids - new_ids or new_ids - old_ids:
        return True

    old_by_id = {item.id: item for item in old_items}
    return any(
        project(old_by_id[item.id], compare_fields) != project(item, compare_fields)
        for item in new_items
    )


def diff(
    old_items: Sequence[T],
    new_items: Sequence[T],
    compare_fields: Sequence[str],
) -> SetDiff[T]:
    """Partition `new_items` into unchanged and new-or-updated items."""
    old_by_projection: dict[tuple[Any, ...], T] = {}
    for item in old_items:
        old_by_projection.setdefault(project(item, compare_fields), item)

    unchanged: list[T] = []
    retained: list[T] = []
    new_or_updated: list[T] = []
    seen: set[tuple[Any, ...]] = set()
    for item in new_items:
        key = project(item, compare_fields)
        match = old_by_projection.get(key)
        if match is None:
            new_or_updated.append(item)
        else:
            unchanged.append(item)
            retained.append(match)
            seen.add(key)

    deleted = tuple(
        item for item in old_items if project(item, compare_fields) not in seen
    )

    return SetDiff(
        changed=set_has_changed(old_items, new_items, compare_fields),
        unchanged=tuple(unchanged),
        new_or_updated=tuple(new_or_updated),
        retained=tuple(retained),
        deleted=deleted,
    )
