from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import redis

from virgo.holdings.service.redis.exception import RedisValueError
from virgo.holdings.service.redis.key import RedisKeyGenerator

if TYPE_CHECKING:
    RedisClient = redis.Redis[str]
else:
    RedisClient = redis.Redis


class Redis(RedisClient):
    """
    A subclass of redis.Redis that checks that every key it touches carries
    the configured prefix, so that cache entries written by this engine
    cannot collide with other tenants of the same redis database.
    """

    # Command name -> (first key argument, last key argument or None for all).
    _PREFIXED_COMMANDS: dict[str, tuple[int, int | None]] = {
        "GET": (0, 1),
        "SET": (0, 1),
        "TTL": (0, 1),
        "PTTL": (0, 1),
        "EXPIRE": (0, 1),
        "KEYS": (0, 1),
        "DEL": (0, None),
        "EXISTS": (0, None),
        "MGET": (0, None),
    }
    _UNCHECKED_COMMANDS = frozenset({"INFO", "PING"})

    def __init__(self, *args: Any, key_generator: RedisKeyGenerator, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.get_key: RedisKeyGenerator = key_generator
        self.auto_close_connection_pool = True

    @property
    def _prefix(self) -> str:
        return self.get_key()

    def _key_args(self, command: str, args: list[Any]) -> Sequence[str]:
        if command in self._UNCHECKED_COMMANDS:
            return []
        span = self._PREFIXED_COMMANDS.get(command)
        if span is None:
            raise RedisValueError(
                f"Command {command} is not checked for prefix. Args: {args}"
            )
        start, end = span
        return [str(arg) for arg in args[start:end]]

    def _check_prefix(self, *args: Any) -> None:
        arg_list = list(args)
        command = str(arg_list.pop(0)).upper()
        for key in self._key_args(command, arg_list):
            if not key.startswith(self._prefix):
                raise RedisValueError(
                    f"Key {key} does not start with prefix {self._prefix}. Command {command} args: {arg_list}"
                )

    def execute_command(self, *args: Any, **options: Any) -> Any:
        self._check_prefix(*args)
        return super().execute_command(*args, **options)
