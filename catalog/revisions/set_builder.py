"""Materialization of immutable alias and identifier sets.

An existing set is never modified. When the submitted items differ from the
old set, a new set is created: unchanged items are reattached by their old
ids and only new or updated items get fresh rows.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Awaitable, Callable, Sequence, TypeVar

import structlog

from catalog.kernel.errors import ConsistencyError
from catalog.revisions.records import (
    AliasKey,
    AliasRecord,
    AliasSetRecord,
    IdentifierRecord,
    IdentifierSetRecord,
)
from catalog.revisions.set_differ import SetDiff, diff
from catalog.revisions.store import RevisionTransaction

logger = structlog.get_logger()

ALIAS_COMPARE_FIELDS = ("name", "sort_name", "language_id", "primary")
IDENTIFIER_COMPARE_FIELDS = ("value", "type_id")

ItemT = TypeVar("ItemT", AliasRecord, IdentifierRecord)


async def _materialize(
    set_id: int,
    result: SetDiff[ItemT],
    create: Callable[[ItemT], Awaitable[ItemT]],
    attach: Callable[[int, list[int]], Awaitable[None]],
) -> list[ItemT]:
    members: list[ItemT] = []
    reattached: set[int] = set()
    for item in result.retained:
        if item.id is not None and item.id not in reattached:
            reattached.add(item.id)
            members.append(item)
    if reattached:
        await attach(set_id, [item.id for item in members])

    created: list[ItemT] = []
    for item in result.new_or_updated:
        created.append(await create(replace(item, id=None)))
    if created:
        await attach(set_id, [item.id for item in created])

    return members + created


def _same_default(old_set: AliasSetRecord, default: AliasKey | None) -> bool:
    old_default = old_set.default_alias
    if old_default is None:
        return default is None
    return default is not None and old_default.key == default


async def build_alias_set(
    tx: RevisionTransaction,
    old_set: AliasSetRecord | None,
    aliases: Sequence[AliasRecord],
    default: AliasKey | None,
) -> AliasSetRecord:
    """Return the alias set for a revision, reusing `old_set` when unchanged.

    `default` selects the default alias by (name, sort_name, language_id)
    within the resulting membership. A selection that matches no member
    raises ConsistencyError.
    """
    old_aliases = old_set.aliases if old_set is not None else ()
    result = diff(old_aliases, aliases, ALIAS_COMPARE_FIELDS)

    if old_set is not None and not result.changed and _same_default(old_set, default):
        logger.debug("Alias set unchanged", alias_set_id=old_set.id)
        return old_set

    set_id = await tx.create_alias_set()
    members = await _materialize(set_id, result, tx.create_alias, tx.attach_aliases)

    default_alias_id = None
    if default is not None:
        match = next((alias for alias in members if alias.key == default), None)
        if match is None:
            raise ConsistencyError(
                meta={"name": default.name, "sort_name": default.sort_name, "language_id": default.language_id}
            )
        default_alias_id = match.id
        await tx.set_default_alias(set_id, match.id)

    logger.debug(
        "Alias set created",
        alias_set_id=set_id,
        reused=len(result.retained),
        created=len(result.new_or_updated),
    )
    return AliasSetRecord(id=set_id, default_alias_id=default_alias_id, aliases=tuple(members))


async def build_identifier_set(
    tx: RevisionTransaction,
    old_set: IdentifierSetRecord | None,
    identifiers: Sequence[IdentifierRecord],
) -> IdentifierSetRecord:
    """Return the identifier set for a revision, reusing `old_set` when unchanged."""
    old_identifiers = old_set.identifiers if old_set is not None else ()
    result = diff(old_identifiers, identifiers, IDENTIFIER_COMPARE_FIELDS)

    if old_set is not None and not result.changed:
        logger.debug("Identifier set unchanged", identifier_set_id=old_set.id)
        return old_set

    set_id = await tx.create_identifier_set()
    members = await _materialize(set_id, result, tx.create_identifier, tx.attach_identifiers)

    logger.debug(
        "Identifier set created",
        identifier_set_id=set_id,
        reused=len(result.retained),
        created=len(result.new_or_updated),
    )
    return IdentifierSetRecord(id=set_id, identifiers=tuple(members))
