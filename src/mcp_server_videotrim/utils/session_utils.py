from __future__ import annotations

from ..exceptions import ValidationError


def validate_session_id(session_id: str | None) -> str:
    """Validate that session_id is a non-empty string and return the stripped value.

    None and empty strings raise "session_id is required"; whitespace-only
    values and non-strings raise "session_id must be a non-empty string".
    """
    if session_id is None:
        raise ValidationError("session_id is required")
    if not isinstance(session_id, str):
        raise ValidationError("session_id must be a non-empty string")
    if session_id == "":
        raise ValidationError("session_id is required")
    cleaned = session_id.strip()
    if not cleaned:
        raise ValidationError("session_id must be a non-empty string")
    return cleaned
