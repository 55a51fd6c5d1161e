from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError

from catalog.db.revision_store import (
    SqlRevisionStore,
    SqlRevisionTransaction,
    properties_from_data,
    translate_store_error,
)
from catalog.db.models import EntityData
from catalog.kernel.errors import NotFoundError, StoreError
from catalog.revisions.entity_types import EntityType
from catalog.revisions.properties import PublisherProperties


class _PgError(Exception):
    def __init__(self, sqlstate: str):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def _session(rowcount: int = 1) -> AsyncMock:
    session = AsyncMock()
    session.add = MagicMock()
    session.execute.return_value = MagicMock(rowcount=rowcount)
    return session


@pytest.mark.unit
@pytest.mark.parametrize("sqlstate", ["40001", "40P01"])
def test_serialization_failures_become_conflicts(sqlstate):
    error = translate_store_error(DBAPIError("UPDATE entity_header", {}, _PgError(sqlstate)))

    assert error.code == "store.conflict"
    assert error.status_code == 409


@pytest.mark.unit
def test_integrity_errors_are_store_errors():
    error = translate_store_error(IntegrityError("INSERT", {}, _PgError("23503")))

    assert error.code == "store.integrity_error"
    assert error.status_code == 500
    assert error.meta == {"sqlstate": "23503"}


@pytest.mark.unit
def test_properties_from_data_reads_json_column():
    data = EntityData(
        type="Publisher",
        alias_set_id=1,
        identifier_set_id=2,
        properties={"type_id": 3, "ended": True},
    )

    props = properties_from_data(EntityType.PUBLISHER, data)

    assert props == PublisherProperties(alias_set_id=1, identifier_set_id=2, type_id=3, ended=True)


@pytest.mark.asyncio
async def test_transaction_commits_at_requested_isolation_level():
    session = _session()
    store = SqlRevisionStore(MagicMock(return_value=session), isolation_level="REPEATABLE READ")

    async with store.transaction() as tx:
        assert isinstance(tx, SqlRevisionTransaction)

    session.connection.assert_awaited_once_with(execution_options={"isolation_level": "REPEATABLE READ"})
    session.commit.assert_awaited_once()
    session.rollback.assert_not_awaited()
    session.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_transaction_rolls_back_and_translates_driver_errors():
    session = _session()
    session.commit.side_effect = DBAPIError("COMMIT", {}, _PgError("40001"))
    store = SqlRevisionStore(MagicMock(return_value=session))

    with pytest.raises(StoreError) as excinfo:
        async with store.transaction():
            pass

    assert excinfo.value.code == "store.conflict"
    session.rollback.assert_awaited_once()
    session.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_domain_errors():
    session = _session()
    store = SqlRevisionStore(MagicMock(return_value=session))

    with pytest.raises(NotFoundError):
        async with store.transaction():
            raise NotFoundError(message="Publisher not found")

    session.commit.assert_not_awaited()
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_header_update_conditioned_on_expected_revision():
    tx = SqlRevisionTransaction(_session(rowcount=0))

    with pytest.raises(StoreError) as excinfo:
        await tx.update_entity(
            uuid4(),
            PublisherProperties(alias_set_id=1, identifier_set_id=2),
            revision_id=8,
            expected_revision_id=7,
        )

    assert excinfo.value.status_code == 409
    assert excinfo.value.meta["expected_revision_id"] == 7


@pytest.mark.asyncio
async def test_increment_unknown_editor_is_not_found():
    tx = SqlRevisionTransaction(_session(rowcount=0))

    with pytest.raises(NotFoundError) as excinfo:
        await tx.increment_editor_revisions(99)

    assert excinfo.value.code == "editor.not_found"


@pytest.mark.asyncio
async def test_attach_with_no_ids_issues_no_statement():
    session = _session()
    tx = SqlRevisionTransaction(session)

    await tx.attach_aliases(1, [])
    await tx.attach_identifiers(1, [])

    session.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_revision_for_unknown_editor_is_not_found():
    session = _session()
    session.get.return_value = None
    tx = SqlRevisionTransaction(session)

    with pytest.raises(NotFoundError) as excinfo:
        await tx.create_revision(999, EntityType.PUBLISHER)

    assert excinfo.value.code == "editor.not_found"
    assert excinfo.value.meta == {"editor_id": 999}
    session.add.assert_not_called()
    session.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_revision_for_known_editor_inserts_row():
    session = _session()
    session.get.return_value = MagicMock()
    tx = SqlRevisionTransaction(session)

    await tx.create_revision(1, EntityType.PUBLISHER)

    (revision,), _ = session.add.call_args
    assert revision.author_id == 1
    assert revision.entity_type == "Publisher"
    session.flush.assert_awaited_once()
