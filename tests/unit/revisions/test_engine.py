"""
Unit tests for the revision engine.

Run against the in-memory store: every transaction works on a private copy
and only a clean exit publishes it.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch
from uuid import uuid4

import pytest

from catalog.kernel.errors import (
    ConsistencyError,
    NoOpEditError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from catalog.revisions.engine import settle
from catalog.revisions.entity_types import EntityType
from catalog.revisions.forms import EditionForm, PublisherForm, WorkForm
from catalog.revisions.records import AliasKey

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]

PENGUIN = {"name": "Penguin", "sort_name": "Penguin", "language_id": 120, "primary": True}


def publisher_form(**overrides) -> PublisherForm:
    data = {
        "aliases": [{**PENGUIN, "default": True}],
        "identifiers": [{"value": "Q1336200", "type_id": 3}],
        "type_id": 1,
        "begin_date": "1935",
    }
    data.update(overrides)
    return PublisherForm(**data)


def resubmit(store, result, **overrides) -> PublisherForm:
    """Build the form a client would send back for the entity's current state."""
    state = store.state
    props = state.entity_revisions[(result.revision_id, result.bbid)]
    default_id = state.default_aliases[props.alias_set_id]
    aliases = [
        {
            "id": alias.id,
            "name": alias.name,
            "sort_name": alias.sort_name,
            "language_id": alias.language_id,
            "primary": alias.primary,
            "default": alias.id == default_id,
        }
        for alias in (state.aliases[i] for i in state.alias_sets[props.alias_set_id])
    ]
    identifiers = [
        {"id": identifier.id, "value": identifier.value, "type_id": identifier.type_id}
        for identifier in (state.identifiers[i] for i in state.identifier_sets[props.identifier_set_id])
    ]
    data = {
        **props.type_specific(),
        "aliases": aliases,
        "identifiers": identifiers,
        "annotation": state.annotations[props.annotation_id].content if props.annotation_id else None,
        "disambiguation": (
            state.disambiguations[props.disambiguation_id].comment if props.disambiguation_id else None
        ),
    }
    data.update(overrides)
    return PublisherForm(**data)


async def create_publisher(engine, **overrides):
    return await engine.create_entity(EntityType.PUBLISHER, publisher_form(**overrides), editor_id=1)


def sample(metrics, name, **labels):
    return metrics.registry.get_sample_value(name, labels) or 0


# =============================================================================
# settle
# =============================================================================


async def test_settle_returns_results_in_order():
    async def value(v):
        await asyncio.sleep(0)
        return v

    assert await settle(value(1), value(2), value(3)) == [1, 2, 3]


async def test_settle_waits_for_every_step_before_raising():
    finished = []

    async def slow():
        await asyncio.sleep(0.01)
        finished.append("slow")

    async def fail():
        raise ValidationError(message="boom")

    with pytest.raises(ValidationError):
        await settle(fail(), slow())

    assert finished == ["slow"]


# =============================================================================
# Create
# =============================================================================


class TestCreateEntity:
    async def test_create_builds_sets_revision_and_header(self, revision_engine, revision_store, metrics):
        result = await create_publisher(revision_engine, note="Imported from catalogue")

        state = revision_store.state
        assert result.parent_revision_id is None
        assert state.headers[result.bbid] == result.revision_id
        assert state.entities[result.bbid] is EntityType.PUBLISHER
        props = state.entity_revisions[(result.revision_id, result.bbid)]
        assert props.type_id == 1
        assert props.begin_date == "1935"
        assert [a.name for a in state.aliases.values()] == ["Penguin"]
        assert state.default_aliases[props.alias_set_id] is not None
        assert state.editors[1] == 1
        assert state.notes == [(1, result.revision_id, "Imported from catalogue")]
        assert state.revision_parents == []
        assert sample(
            metrics, "catalog_revisions_committed_total", entity_type="Publisher", operation="create"
        ) == 1

    async def test_create_with_empty_sets_still_creates_sets(self, revision_engine, revision_store):
        result = await revision_engine.create_entity(EntityType.WORK, WorkForm(), editor_id=1)

        props = revision_store.state.entity_revisions[(result.revision_id, result.bbid)]
        assert revision_store.state.alias_sets[props.alias_set_id] == []
        assert revision_store.state.identifier_sets[props.identifier_set_id] == []
        assert props.annotation_id is None
        assert props.disambiguation_id is None
        assert revision_store.state.revision_parents == []
        assert result.parent_revision_id is None

    async def test_create_stamps_new_annotation(self, revision_engine, revision_store):
        result = await create_publisher(revision_engine, annotation="Founded by Allen Lane")

        props = revision_store.state.entity_revisions[(result.revision_id, result.bbid)]
        annotation = revision_store.state.annotations[props.annotation_id]
        assert annotation.last_revision_id == result.revision_id

    async def test_blank_note_is_not_stored(self, revision_engine, revision_store):
        await create_publisher(revision_engine, note="   ")
        assert revision_store.state.notes == []

    async def test_unknown_editor_aborts_everything(self, revision_engine, revision_store, metrics):
        before = revision_store.snapshot()

        with pytest.raises(NotFoundError) as excinfo:
            await revision_engine.create_entity(EntityType.PUBLISHER, publisher_form(), editor_id=42)

        assert excinfo.value.code == "editor.not_found"
        assert revision_store.state == before
        assert "insert_entity" not in revision_store.calls
        assert sample(
            metrics, "catalog_revisions_rejected_total", entity_type="Publisher", code="editor.not_found"
        ) == 1

    async def test_form_for_other_type_is_rejected(self, revision_engine, revision_store):
        with pytest.raises(ValidationError) as excinfo:
            await revision_engine.create_entity(EntityType.WORK, publisher_form(), editor_id=1)

        assert excinfo.value.code == "form.entity_type_mismatch"
        assert revision_store.commits == 0

    async def test_multiple_defaults_rejected_before_transaction(self, revision_engine, revision_store):
        form = publisher_form(
            aliases=[{**PENGUIN, "default": True}, {**PENGUIN, "name": "Pelican", "default": True}]
        )

        with pytest.raises(ValidationError):
            await revision_engine.create_entity(EntityType.PUBLISHER, form, editor_id=1)

        assert revision_store.calls == []

    async def test_sub_builder_failure_rolls_back(self, revision_engine, revision_store):
        revision_store.failures["create_identifier"] = StoreError(message="disk full")
        before = revision_store.snapshot()

        with pytest.raises(StoreError):
            await create_publisher(revision_engine, annotation="Founded by Allen Lane")

        assert revision_store.state == before
        assert revision_store.rollbacks == 1


# =============================================================================
# Edit
# =============================================================================


class TestEditEntity:
    async def test_identical_resubmission_is_a_noop(self, revision_engine, revision_store, metrics):
        created = await create_publisher(revision_engine, annotation="Founded by Allen Lane")
        before = revision_store.snapshot()

        with pytest.raises(NoOpEditError) as excinfo:
            await revision_engine.edit_entity(
                EntityType.PUBLISHER,
                created.bbid,
                resubmit(revision_store, created, note="no change really"),
                editor_id=1,
            )

        assert excinfo.value.message == "Entity did not change"
        assert excinfo.value.status_code == 400
        assert revision_store.state == before
        assert sample(
            metrics, "catalog_revisions_rejected_total", entity_type="Publisher", code="revision.no_change"
        ) == 1

    async def test_resubmission_without_item_ids_is_a_change(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)

        edited = await revision_engine.edit_entity(
            EntityType.PUBLISHER, created.bbid, publisher_form(), editor_id=1
        )

        assert set(edited.changed_fields) == {"alias_set_id", "identifier_set_id"}
        # Content matched, so the old rows were reattached rather than copied.
        old_props = revision_store.state.entity_revisions[(created.revision_id, created.bbid)]
        assert (
            revision_store.state.alias_sets[edited.properties.alias_set_id]
            == revision_store.state.alias_sets[old_props.alias_set_id]
        )

    async def test_edit_links_parent_and_repoints_header(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)

        edited = await revision_engine.edit_entity(
            EntityType.PUBLISHER, created.bbid, resubmit(revision_store, created, ended=True), editor_id=1
        )

        state = revision_store.state
        assert edited.parent_revision_id == created.revision_id
        assert edited.changed_fields == ("ended",)
        assert state.headers[created.bbid] == edited.revision_id
        assert (created.revision_id, edited.revision_id) in state.revision_parents
        assert state.editors[1] == 2
        # The previous revision's data is untouched.
        assert state.entity_revisions[(created.revision_id, created.bbid)].ended is False

    async def test_unchanged_single_default_alias_keeps_alias_set(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)
        old_props = revision_store.state.entity_revisions[(created.revision_id, created.bbid)]
        alias_set_count = len(revision_store.state.alias_sets)

        edited = await revision_engine.edit_entity(
            EntityType.PUBLISHER, created.bbid, resubmit(revision_store, created, ended=True), editor_id=1
        )

        assert edited.properties.alias_set_id == old_props.alias_set_id
        assert len(revision_store.state.alias_sets) == alias_set_count

    async def test_alias_edit_reuses_unchanged_alias_rows(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)
        old_props = revision_store.state.entity_revisions[(created.revision_id, created.bbid)]
        (penguin_id,) = revision_store.state.alias_sets[old_props.alias_set_id]
        current = resubmit(revision_store, created)

        form = resubmit(
            revision_store,
            created,
            aliases=[
                current.aliases[0].model_dump(),
                {"name": "Penguin Books", "sort_name": "Penguin Books", "language_id": 120},
            ],
        )
        edited = await revision_engine.edit_entity(EntityType.PUBLISHER, created.bbid, form, editor_id=1)

        new_props = edited.properties
        assert edited.changed_fields == ("alias_set_id",)
        assert new_props.identifier_set_id == old_props.identifier_set_id
        members = revision_store.state.alias_sets[new_props.alias_set_id]
        assert penguin_id in members
        assert len(members) == 2
        assert revision_store.state.default_aliases[new_props.alias_set_id] == penguin_id

    async def test_replaced_identifier_is_not_reattached(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)
        old_props = revision_store.state.entity_revisions[(created.revision_id, created.bbid)]
        (wikidata_id,) = revision_store.state.identifier_sets[old_props.identifier_set_id]

        form = resubmit(revision_store, created, identifiers=[{"value": "Q7164109", "type_id": 3}])
        edited = await revision_engine.edit_entity(EntityType.PUBLISHER, created.bbid, form, editor_id=1)

        members = revision_store.state.identifier_sets[edited.properties.identifier_set_id]
        assert len(members) == 1
        assert members[0] != wikidata_id
        assert revision_store.state.identifiers[members[0]].value == "Q7164109"

    async def test_added_identifier_reuses_existing_row(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)
        old_props = revision_store.state.entity_revisions[(created.revision_id, created.bbid)]
        (wikidata_id,) = revision_store.state.identifier_sets[old_props.identifier_set_id]

        form = resubmit(
            revision_store,
            created,
            identifiers=[
                {"id": wikidata_id, "value": "Q1336200", "type_id": 3},
                {"value": "0000000121032683", "type_id": 4},
            ],
        )
        edited = await revision_engine.edit_entity(EntityType.PUBLISHER, created.bbid, form, editor_id=1)

        members = revision_store.state.identifier_sets[edited.properties.identifier_set_id]
        assert members[0] == wikidata_id
        assert len(members) == 2

    async def test_changed_annotation_is_stamped_with_new_revision(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine, annotation="Founded by Allen Lane")

        edited = await revision_engine.edit_entity(
            EntityType.PUBLISHER,
            created.bbid,
            resubmit(revision_store, created, annotation="Founded by Allen Lane in 1935"),
            editor_id=1,
        )

        assert edited.changed_fields == ("annotation_id",)
        annotation = revision_store.state.annotations[edited.properties.annotation_id]
        assert annotation.last_revision_id == edited.revision_id

    async def test_unchanged_annotation_keeps_original_stamp(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine, annotation="Founded by Allen Lane")

        edited = await revision_engine.edit_entity(
            EntityType.PUBLISHER, created.bbid, resubmit(revision_store, created, ended=True), editor_id=1
        )

        annotation = revision_store.state.annotations[edited.properties.annotation_id]
        assert annotation.last_revision_id == created.revision_id

    async def test_default_alias_outside_membership_commits_nothing(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)
        form = resubmit(
            revision_store,
            created,
            aliases=[{**PENGUIN, "default": True}, {"name": "Pelican", "sort_name": "Pelican"}],
        )
        before = revision_store.snapshot()

        with patch.object(PublisherForm, "default_alias_key", return_value=AliasKey("Puffin", "Puffin", None)):
            with pytest.raises(ConsistencyError):
                await revision_engine.edit_entity(EntityType.PUBLISHER, created.bbid, form, editor_id=1)

        assert revision_store.state == before

    async def test_edit_unknown_bbid_is_not_found(self, revision_engine):
        with pytest.raises(NotFoundError) as excinfo:
            await revision_engine.edit_entity(
                EntityType.PUBLISHER, uuid4(), publisher_form(), editor_id=1
            )
        assert excinfo.value.message == "Publisher not found"

    async def test_edit_with_wrong_type_is_not_found(self, revision_engine):
        created = await create_publisher(revision_engine)

        with pytest.raises(NotFoundError):
            await revision_engine.edit_entity(EntityType.WORK, created.bbid, WorkForm(), editor_id=1)

    async def test_concurrent_edits_commit_exactly_once(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)

        results = await asyncio.gather(
            revision_engine.edit_entity(
                EntityType.PUBLISHER, created.bbid, resubmit(revision_store, created, ended=True), editor_id=1
            ),
            revision_engine.edit_entity(
                EntityType.PUBLISHER, created.bbid, resubmit(revision_store, created, type_id=2), editor_id=1
            ),
            return_exceptions=True,
        )

        committed = [r for r in results if not isinstance(r, BaseException)]
        conflicts = [r for r in results if isinstance(r, StoreError)]
        assert len(committed) == 1
        assert len(conflicts) == 1
        assert conflicts[0].status_code == 409
        assert conflicts[0].code == "store.conflict"
        assert revision_store.state.headers[created.bbid] == committed[0].revision_id
        assert revision_store.state.editors[1] == 2


# =============================================================================
# Delete and history
# =============================================================================


class TestDeleteEntity:
    async def test_delete_records_revision_without_data(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine)

        deleted = await revision_engine.delete_entity(
            EntityType.PUBLISHER, created.bbid, editor_id=1, note="Duplicate"
        )

        state = revision_store.state
        assert deleted.properties is None
        assert state.headers[created.bbid] == deleted.revision_id
        assert state.entity_revisions[(deleted.revision_id, created.bbid)] is None
        assert (created.revision_id, deleted.revision_id) in state.revision_parents
        assert state.notes[-1] == (1, deleted.revision_id, "Duplicate")

    async def test_deleted_entity_cannot_be_edited_or_deleted_again(self, revision_engine):
        created = await create_publisher(revision_engine)
        await revision_engine.delete_entity(EntityType.PUBLISHER, created.bbid, editor_id=1)

        with pytest.raises(NotFoundError):
            await revision_engine.delete_entity(EntityType.PUBLISHER, created.bbid, editor_id=1)
        with pytest.raises(NotFoundError):
            await revision_engine.edit_entity(
                EntityType.PUBLISHER, created.bbid, publisher_form(ended=True), editor_id=1
            )

    async def test_history_is_newest_first(self, revision_engine, revision_store):
        created = await create_publisher(revision_engine, note="first")
        edited = await revision_engine.edit_entity(
            EntityType.PUBLISHER, created.bbid, resubmit(revision_store, created, ended=True), editor_id=1
        )
        deleted = await revision_engine.delete_entity(EntityType.PUBLISHER, created.bbid, editor_id=1)

        history = await revision_engine.list_revisions(EntityType.PUBLISHER, created.bbid)

        assert [r.id for r in history] == [deleted.revision_id, edited.revision_id, created.revision_id]
        assert history[0].deleted is True
        assert history[1].parent_ids == (created.revision_id,)
        assert history[2].notes == ("first",)
        assert history[2].author_name == "alice"


async def test_edition_properties_round_trip(revision_engine, revision_store):
    publisher = await create_publisher(revision_engine)
    form = EditionForm(
        aliases=[{"name": "Penguin Classics", "sort_name": "Penguin Classics", "default": True}],
        publisher_bbids=[publisher.bbid],
        pages=320,
    )

    created = await revision_engine.create_entity(EntityType.EDITION, form, editor_id=1)

    props = revision_store.state.entity_revisions[(created.revision_id, created.bbid)]
    assert props.publisher_bbids == (str(publisher.bbid),)
    assert props.pages == 320
