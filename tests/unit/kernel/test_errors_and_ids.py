from __future__ import annotations

from uuid import UUID

import pytest

from catalog.kernel.errors import (
    CatalogError,
    ConsistencyError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from catalog.kernel.ids import is_valid_bbid, new_bbid, parse_bbid

pytestmark = pytest.mark.unit


def test_error_code_must_be_dotted_lowercase():
    with pytest.raises(ValueError):
        CatalogError(code="Bad Code", message="x")
    # Multi-segment codes are accepted.
    assert CatalogError(code="store.conflict.header", message="x").code == "store.conflict.header"


def test_status_codes():
    assert NotFoundError().status_code == 404
    assert ValidationError().status_code == 400
    assert ConsistencyError().status_code == 400
    assert StoreError().status_code == 500
    assert StoreError.conflict("lost race").status_code == 409


def test_public_dict_omits_empty_meta_and_request_id():
    assert NotFoundError(message="Publisher not found").to_public_dict(request_id=None) == {
        "detail": "Publisher not found",
        "code": "resource.not_found",
    }


def test_new_bbid_is_valid():
    assert is_valid_bbid(str(new_bbid()))


@pytest.mark.parametrize(
    "value",
    [
        "",
        "not-a-uuid",
        "b4e5a5f22b7e4c559a2e3f1f0c1d2e3f",
        "{b4e5a5f2-2b7e-4c55-9a2e-3f1f0c1d2e3f}",
    ],
)
def test_parse_bbid_rejects_non_canonical(value):
    with pytest.raises(ValidationError) as excinfo:
        parse_bbid(value)
    assert excinfo.value.code == "request.invalid_bbid"
    assert excinfo.value.status_code == 400


def test_parse_bbid_accepts_canonical():
    value = "b4e5a5f2-2b7e-4c55-9a2e-3f1f0c1d2e3f"
    assert parse_bbid(value) == UUID(value)


def test_parse_bbid_is_case_insensitive():
    assert parse_bbid("B4E5A5F2-2B7E-4C55-9A2E-3F1F0C1D2E3F") == UUID("b4e5a5f2-2b7e-4c55-9a2e-3f1f0c1d2e3f")
