from __future__ import annotations

from uuid import UUID, uuid4

from catalog.kernel.errors import ValidationError


def new_bbid() -> UUID:
    """Generate a new BBID for a freshly created entity."""
    return uuid4()


def is_valid_bbid(value: str) -> bool:
    """Return True if `value` is a canonical hyphenated UUID string."""
    try:
        parsed = UUID(value)
    except (TypeError, ValueError, AttributeError):
        return False
    return str(parsed) == value.strip().lower()


def parse_bbid(value: str) -> UUID:
    """Parse a BBID from untrusted input.

    Raises ValidationError (HTTP 400) for anything that is not a canonical UUID.
    """
    if not isinstance(value, str) or not is_valid_bbid(value):
        raise ValidationError(
            message="Invalid bbid",
            code="request.invalid_bbid",
            meta={"bbid": str(value)},
        )
    return UUID(value)
