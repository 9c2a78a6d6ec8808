from __future__ import annotations

from pathlib import PurePath

from ..exceptions import ValidationError


def validate_filename(filename: str | None) -> str:
    """Return ``filename`` stripped, rejecting empty values and path components."""
    if filename is None or not isinstance(filename, str) or not filename.strip():
        raise ValidationError("filename must be a non-empty string")
    cleaned = filename.strip()
    if PurePath(cleaned).name != cleaned or cleaned in {".", ".."} or "\\" in cleaned:
        raise ValidationError("filename must not contain path components")
    return cleaned


def upload_extension(original_name: str | None) -> str:
    """Extension of the client's filename, lower-cased, or empty."""
    if not original_name:
        return ""
    suffix = PurePath(original_name.replace("\\", "/")).suffix.lower()
    return suffix if suffix[1:].isalnum() else ""


def derive_display_name(
    original_name: str | None, suffix: str, extension: str, default: str
) -> str:
    """Delivered name: original stem + fixed suffix + result extension.

    ``holiday.MOV`` becomes ``holiday-edited.mp4``. Without a usable original
    name the default is returned.
    """
    if not original_name:
        return default
    stem = PurePath(original_name.replace("\\", "/")).stem.strip()
    if not stem:
        return default
    return f"{stem}{suffix}{extension}"


def manifest_line(path: str) -> str:
    """One concat-demuxer entry, with single quotes escaped."""
    escaped = path.replace("'", "'\\''")
    return f"file '{escaped}'"
