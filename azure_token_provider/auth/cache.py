"""In-memory access token cache with single-flight acquisition."""

import asyncio
import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from azure_token_provider.exceptions import AcquisitionError, CancellationError
from azure_token_provider.auth.retrievers import TokenRetriever


logger = logging.getLogger(__name__)

# Tokens are treated as expired this many seconds before their real expiry
TOKEN_EXPIRY_MARGIN_SECONDS = 300


@dataclass(frozen=True)
class CachedToken:
    """Immutable cache entry."""

    token: str
    expires_on: float

    def is_valid(self, now: float, margin: float = TOKEN_EXPIRY_MARGIN_SECONDS) -> bool:
        """Check if token is still valid with margin.

        Args:
            now: Current time (epoch seconds)
            margin: Seconds before expiry at which the token is considered stale

        Returns:
            True if the token can be handed out
        """
        return now < self.expires_on - margin


@dataclass(frozen=True)
class TokenCacheKey:
    """Cache key: retriever identity plus normalized scopes.

    Retrievers hash by identity, so two structurally equal credentials
    resolved by different providers never share entries.
    """

    retriever: TokenRetriever
    scopes: tuple[str, ...]

    @classmethod
    def build(cls, retriever: TokenRetriever, scopes: Iterable[str]) -> "TokenCacheKey":
        return cls(retriever=retriever, scopes=tuple(sorted(set(scopes))))


class TokenCache:
    """Async-safe token cache shared by every provider in the process.

    - Valid entries are returned without waiting
    - At most one acquisition runs per key; concurrent callers share its result
    - Failures are not cached and reach every waiter
    - Entries are replaced on refresh and never evicted
    """

    def __init__(
        self,
        margin: float = TOKEN_EXPIRY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the token cache.

        Args:
            margin: Seconds before expiry at which a token is refreshed
            clock: Returns the current time in epoch seconds
        """
        self._margin = margin
        self._clock = clock
        self._entries: dict[TokenCacheKey, CachedToken] = {}
        self._in_flight: dict[TokenCacheKey, concurrent.futures.Future] = {}
        self._tasks: set[asyncio.Task] = set()
        # Guards the two maps only; never held across I/O
        self._lock = threading.Lock()

    async def get_access_token(
        self,
        retriever: TokenRetriever,
        scopes: list[str],
        timeout: float | None = None,
    ) -> str:
        """Get an access token, fetching one only if no valid entry exists.

        Args:
            retriever: Retriever used on a cache miss
            scopes: Requested scopes (order and duplicates are ignored)
            timeout: Seconds this caller waits for an acquisition, or None

        Returns:
            Access token string

        Raises:
            AcquisitionError: If the acquisition this caller waited on failed
            CancellationError: If the timeout expired before a token arrived
        """
        key = TokenCacheKey.build(retriever, scopes)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_valid(self._clock(), self._margin):
                logger.debug(f"Token cache hit for scopes {list(key.scopes)}")
                return entry.token

            in_flight = self._in_flight.get(key)
            is_leader = in_flight is None
            if is_leader:
                in_flight = concurrent.futures.Future()
                self._in_flight[key] = in_flight

        if is_leader:
            logger.debug(f"Token cache miss for scopes {list(key.scopes)}, acquiring")
            task = asyncio.ensure_future(self._acquire(key, in_flight))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            logger.debug(
                f"Token acquisition in flight for scopes {list(key.scopes)}, waiting"
            )

        # Shielded so a waiter leaving early never cancels the shared acquisition
        waiter = asyncio.shield(asyncio.wrap_future(in_flight))
        try:
            if timeout is None:
                entry = await waiter
            else:
                entry = await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError as e:
            raise CancellationError(
                f"Timed out after {timeout}s waiting for token for scopes {list(key.scopes)}"
            ) from e

        return entry.token

    async def _acquire(
        self, key: TokenCacheKey, in_flight: concurrent.futures.Future
    ) -> None:
        """Run one acquisition and publish the result to all waiters."""
        try:
            access_token = await key.retriever.get_access_token(list(key.scopes))
        except asyncio.CancelledError:
            self._finish(key, in_flight, error=AcquisitionError("token acquisition was cancelled"))
            raise
        except Exception as e:
            logger.warning(f"Token acquisition failed for scopes {list(key.scopes)}: {e}")
            self._finish(key, in_flight, error=e)
            return

        entry = CachedToken(token=access_token.token, expires_on=float(access_token.expires_on))
        self._finish(key, in_flight, entry=entry)

    def _finish(
        self,
        key: TokenCacheKey,
        in_flight: concurrent.futures.Future,
        entry: CachedToken | None = None,
        error: BaseException | None = None,
    ) -> None:
        with self._lock:
            if entry is not None:
                self._entries[key] = entry
            if self._in_flight.get(key) is in_flight:
                del self._in_flight[key]

        if entry is not None:
            in_flight.set_result(entry)
        else:
            in_flight.set_exception(error)

    def peek(self, retriever: TokenRetriever, scopes: list[str]) -> CachedToken | None:
        """Return the current entry for a key without acquiring, valid or not."""
        with self._lock:
            return self._entries.get(TokenCacheKey.build(retriever, scopes))

    def invalidate(self, retriever: TokenRetriever, scopes: list[str] | None = None) -> int:
        """Drop cached entries for a retriever.

        Args:
            retriever: Retriever whose entries are dropped
            scopes: Only drop the entry for these scopes, if given

        Returns:
            Number of entries removed
        """
        with self._lock:
            if scopes is not None:
                key = TokenCacheKey.build(retriever, scopes)
                return 1 if self._entries.pop(key, None) is not None else 0

            keys = [key for key in self._entries if key.retriever is retriever]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_cache: TokenCache | None = None
_default_cache_lock = threading.Lock()


def get_default_token_cache() -> TokenCache:
    """Get the process-wide token cache, creating it on first use."""
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = TokenCache()
        return _default_cache
