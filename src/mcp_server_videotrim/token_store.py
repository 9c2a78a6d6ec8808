"""
Download Token Store (Cacheout-backed)

One-time download tokens, each bound to a single result file and the name
it should be delivered under. Tokens live in a Cacheout cache whose TTL is
the global retention window, so an expired token reads exactly like an
unknown one.

Redemption pops the token under the store lock: of two concurrent
redemptions of the same token, at most one succeeds.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, cast

from cacheout import Cache

from .exceptions import NotFoundError
from .ids import new_download_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadToken:
    token: str
    filename: str
    display_name: str
    session_id: str
    created_at: float


class DownloadTokenStore:
    """Token -> result file mapping with TTL expiry and one-shot redemption."""

    def __init__(
        self,
        ttl_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        # maxsize=0 disables size-based eviction; only age evicts tokens
        self._tokens = Cache(maxsize=0, ttl=ttl_seconds, timer=clock)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def issue(
        self, filename: str, display_name: str, session_id: str
    ) -> DownloadToken:
        record = DownloadToken(
            token=new_download_token(),
            filename=filename,
            display_name=display_name,
            session_id=session_id,
            created_at=self._clock(),
        )
        with self._lock:
            self._tokens.set(record.token, record)
        logger.info(f"Issued download token {record.token} for {filename}")
        return record

    def lookup(self, token: str) -> DownloadToken | None:
        """Peek at a token without consuming it."""
        with self._lock:
            return cast(Optional[DownloadToken], self._tokens.get(token))

    def redeem(self, token: str) -> DownloadToken:
        """Consume a token. Raises NotFoundError for unknown or expired tokens."""
        with self._lock:
            record = cast(Optional[DownloadToken], self._tokens.get(token))
            if record is None:
                raise NotFoundError("Download link has expired or is invalid.")
            self._tokens.delete(token)
        logger.info(f"Redeemed download token {token}")
        return record

    def pending_for_session(self, session_id: str) -> int:
        with self._lock:
            self._tokens.delete_expired()
            return sum(
                1 for record in self._tokens.values() if record.session_id == session_id
            )

    def revoke_session(self, session_id: str) -> int:
        """Drop every unredeemed token minted for ``session_id``."""
        with self._lock:
            doomed = [
                key
                for key, record in self._tokens.items()
                if record.session_id == session_id
            ]
            for key in doomed:
                self._tokens.delete(key)
        return len(doomed)

    def sweep(self, now: float) -> int:
        """Drop tokens older than the retention window. Files are left alone."""
        with self._lock:
            doomed = [
                key
                for key, record in self._tokens.items()
                if now - record.created_at > self._ttl_seconds
            ]
            for key in doomed:
                self._tokens.delete(key)
                logger.info(f"Deleted expired download token: {key}")
            # Entries the cache already considers expired may not be listed above
            dropped = len(doomed) + self._tokens.delete_expired()
        return dropped
