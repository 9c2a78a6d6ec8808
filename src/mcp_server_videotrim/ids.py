"""
Identifier Generator

Opaque identifiers for client sessions, download tokens and on-disk names.
Each identifier combines a millisecond timestamp with a uniformly random
nine-digit suffix drawn from the OS CSPRNG.
"""

from __future__ import annotations

import secrets
import time

RANDOM_DIGITS = 9
_RANDOM_SPACE = 10**RANDOM_DIGITS


def _millis() -> int:
    return int(time.time() * 1000)


def generate_stamp() -> str:
    """Return `<ms>-<9 random digits>`, used to namespace files on disk."""
    return f"{_millis()}-{secrets.randbelow(_RANDOM_SPACE):0{RANDOM_DIGITS}d}"


def generate_id(prefix: str) -> str:
    """Return a prefixed opaque identifier, e.g. ``client-1700000000000-042…``."""
    return f"{prefix}-{generate_stamp()}"


def new_client_id() -> str:
    return generate_id("client")


def new_download_token() -> str:
    return generate_id("dl")
