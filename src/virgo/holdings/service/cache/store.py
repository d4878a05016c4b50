from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from collections.abc import Callable

from expiringdict import ExpiringDict

from virgo.holdings.service.redis.redis import Redis
from virgo.holdings.util.datetime_helpers import utc_now
from virgo.holdings.util.log import LoggerMixin


class CacheStore(LoggerMixin, ABC):
    """A string-valued key/value store with per-entry expiration.

    Entries are written by `fetch` on a miss and removed by `delete`.
    No per-key locking is done: two callers missing on the same key at the
    same time will both compute the value, and the last write wins.
    """

    @abstractmethod
    def read(self, key: str) -> str | None: ...

    @abstractmethod
    def write(self, key: str, value: str, expires_in: datetime.timedelta) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the entry for `key`. Returns True if an entry was removed."""

    def fetch(
        self,
        key: str,
        expires_in: datetime.timedelta,
        compute: Callable[[], str | None],
    ) -> str | None:
        """Return the cached value for `key`, or compute and cache it.

        A computed value of None is returned but not cached.
        """
        value = self.read(key)
        if value is not None:
            self.log.debug(f"HIT KEY ==> {key}")
            return value

        self.log.debug(f"MISS KEY => {key}")
        value = compute()
        if value is not None:
            self.write(key, value, expires_in)
        return value


class MemoryCacheStore(CacheStore):
    """Cache entries in process memory. Used when no redis url is configured.

    Entries live in an `ExpiringDict` bounded to `max_len` keys, with the
    oldest dropped first. Each entry also carries its own expiry time, so
    lifetimes shorter than `max_age` are honored; longer ones are cut to
    `max_age`.
    """

    MAX_LEN = 1000
    MAX_AGE = datetime.timedelta(hours=1)

    def __init__(
        self,
        max_len: int = MAX_LEN,
        max_age: datetime.timedelta = MAX_AGE,
    ) -> None:
        self._entries = ExpiringDict(
            max_len=max_len, max_age_seconds=max_age.total_seconds()
        )

    def read(self, key: str) -> str | None:
        with self._entries.lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= utc_now():
                self._entries.pop(key, None)
                return None
            return value

    def write(self, key: str, value: str, expires_in: datetime.timedelta) -> None:
        self._entries[key] = (value, utc_now() + expires_in)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._entries.lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._entries.lock:
            return len(self._entries)


class RedisCacheStore(CacheStore):
    """Cache entries in redis, under `<prefix>::cache::<key>`."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    def _key(self, key: str) -> str:
        return self._client.get_key("cache", key)

    def read(self, key: str) -> str | None:
        return self._client.get(self._key(key))

    def write(self, key: str, value: str, expires_in: datetime.timedelta) -> None:
        self._client.set(self._key(key), value, ex=expires_in)

    def delete(self, key: str) -> bool:
        return bool(self._client.delete(self._key(key)))
