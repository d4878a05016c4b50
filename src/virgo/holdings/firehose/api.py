from __future__ import annotations

import dataclasses
import datetime
import os
import shlex
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Protocol, TypedDict
from urllib.parse import urlencode

from virgo.holdings.firehose.configuration import FirehoseConfiguration
from virgo.holdings.service.cache.store import CacheStore
from virgo.holdings.util.http import HTTP
from virgo.holdings.util.http.exception import (
    RequestNetworkException,
    RequestTimedOut,
)
from virgo.holdings.util.log import LoggerMixin, elapsed_time_logging


class CacheOptions(TypedDict, total=False):
    """Per-call overrides for how a GET uses the cache.

    `expires_in` replaces the lifetime chosen from the request path,
    `cache` set to False goes straight to the ILS, and `file` reads the
    body from a local file instead of the network.
    """

    expires_in: datetime.timedelta | int
    cache: bool
    file: str | os.PathLike[str]


class FirehoseResponse(Protocol):
    @property
    def status_code(self) -> int: ...

    @property
    def text(self) -> str: ...


@dataclasses.dataclass(frozen=True)
class ProxyResponse:
    """The result of a request made with curl on the proxy host."""

    status_code: int
    text: str


type CommandRunner = Callable[[list[str], float], str]


def run_command(args: list[str], timeout: float) -> str:
    """Run a command and return its standard output."""
    try:
        completed = subprocess.run(
            args, capture_output=True, text=True, timeout=timeout, check=False
        )
    except subprocess.TimeoutExpired as e:
        raise RequestTimedOut(args[0], str(e)) from e
    except OSError as e:
        raise RequestNetworkException(args[0], str(e)) from e
    if completed.returncode != 0:
        raise RequestNetworkException(
            args[0],
            completed.stderr.strip() or f"exit status {completed.returncode}",
        )
    return completed.stdout


class FirehoseApi(LoggerMixin):
    """GET and POST requests to the Firehose ILS service.

    GET bodies are cached under the request path (the url with the base
    url removed). The first path segment picks the cache lifetime: patron
    lookups ("users") expire almost at once, reference lists ("list") last
    an hour, and everything else gets the short default.
    """

    NAMESPACE = "FIREHOSE"
    SERVICE_NAME = "Firehose"

    USERS_ACTION = "users"
    LIST_ACTION = "list"

    # Appended to proxied POSTs so the status code can be read back.
    STATUS_MARKER = "\n%{http_code}"

    def __init__(
        self,
        settings: FirehoseConfiguration,
        cache: CacheStore,
        command_runner: CommandRunner = run_command,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.command_runner = command_runner

    def url(self, *path: str) -> str:
        if path and "//" in path[0]:
            base, *rest = path
        else:
            base, rest = self.settings.base_url, list(path)
        return "/".join([base.rstrip("/"), *(str(p).strip("/") for p in rest)])

    def cache_key(self, url: str) -> str:
        return url.removeprefix(self.settings.base_url + "/")

    def store_key(self, *path: str) -> str:
        return f"{self.NAMESPACE}:{self.cache_key(self.url(*path))}"

    def action(self, *path: str) -> str | None:
        if not path:
            return None
        if "//" in path[0]:
            return path[1] if len(path) > 1 else None
        return path[0]

    def expires_in(
        self, *path: str, cache_options: CacheOptions | None = None
    ) -> datetime.timedelta:
        expires_in = (cache_options or {}).get("expires_in")
        if isinstance(expires_in, int):
            return datetime.timedelta(seconds=expires_in)
        if expires_in is not None:
            return expires_in

        action = self.action(*path)
        if action == self.USERS_ACTION:
            return self.settings.instant_expire
        if action == self.LIST_ACTION:
            return self.settings.slow_expire
        return self.settings.fast_expire

    def get(self, *path: str, cache_options: CacheOptions | None = None) -> str | None:
        options = cache_options or {}
        url = self.url(*path)

        if (file := options.get("file")) is not None:
            self.log.warning(f"FIREHOSE reading {url} from {file}")
            return Path(file).read_text()

        if not options.get("cache", True) or not self.settings.caching_enabled:
            return self._fetch(url)

        key = self.store_key(*path)
        self.log.debug(f"FIREHOSE KEY => {key}")
        return self.cache.fetch(
            key,
            self.expires_in(*path, cache_options=options),
            lambda: self._fetch(url),
        )

    def post(self, *path: str, data: Mapping[str, str | None]) -> FirehoseResponse:
        """POST form data. Never cached, never retried."""
        url = self.url(*path)
        with elapsed_time_logging(
            log_method=self.log.debug,
            message_prefix=f"FIREHOSE POST {url}",
            skip_start=True,
        ):
            if self.settings.proxy_host:
                return self.proxy_post(url, data)
            return HTTP.post_with_timeout(
                url,
                data=data,
                timeout=self.settings.timeout,
                max_retry_count=0,
                allowed_response_codes=["2xx", "3xx", "4xx", "5xx"],
            )

    def discard(self, *path: str, cache_options: CacheOptions | None = None) -> None:
        key = self.store_key(*path)
        if self.cache.delete(key):
            self.log.debug(f"FIREHOSE discarded {key}")

    def _fetch(self, url: str) -> str:
        with elapsed_time_logging(
            log_method=self.log.debug,
            message_prefix=f"FIREHOSE GET {url}",
            skip_start=True,
        ):
            if self.settings.proxy_host:
                return self.proxy_get(url)
            response = HTTP.get_with_timeout(
                url,
                timeout=self.settings.timeout,
                max_retry_count=self.settings.retries,
                allowed_response_codes=["2xx"],
            )
            return response.text

    def proxy_command(self, command: list[str]) -> list[str]:
        """ssh arguments that run `command` on the proxy host."""
        ssh = ["ssh", "-n", "-T", "-o", "PermitLocalCommand=no"]
        if self.settings.proxy_user:
            ssh += ["-l", self.settings.proxy_user]
        ssh.append(self.settings.proxy_host or "")
        ssh.append(shlex.join(command))
        return ssh

    def proxy_get(self, url: str) -> str:
        command = self.proxy_command(["curl", "-s", "-S", url])
        return self.command_runner(command, self.settings.timeout)

    def proxy_post(self, url: str, data: Mapping[str, str | None]) -> ProxyResponse:
        params = urlencode(
            {name: value for name, value in data.items() if value is not None}
        )
        command = self.proxy_command(
            ["curl", "-s", "-S", "-X", "POST", "-d", params]
            + ["-w", self.STATUS_MARKER, url]
        )
        output = self.command_runner(command, self.settings.timeout)
        body, _, status = output.rpartition("\n")
        if not status.strip().isdigit():
            raise RequestNetworkException(
                url, f"No status code in proxied response: {output!r}"
            )
        return ProxyResponse(status_code=int(status), text=body)

    def lookup[T](
        self,
        *path: str,
        parse: Callable[[str | None], T],
        cache_options: CacheOptions | None = None,
        operation: str = "lookup",
    ) -> T | None:
        """GET a document and parse it.

        A network failure discards the cached body and is re-raised. Any
        other failure discards the cached body, is logged, and gives None.
        """
        body: str | None = None
        try:
            body = self.get(*path, cache_options=cache_options)
            return parse(body)
        except RequestNetworkException:
            self.discard(*path, cache_options=cache_options)
            raise
        except Exception as e:
            self.discard(*path, cache_options=cache_options)
            self.log.info(f"FIREHOSE {operation} {describe_body(body)}: {e}")
            self.log.debug(f"unable to parse {operation} result from:\n{body!r}")
            return None


def describe_body(body: object) -> str:
    if body is None:
        return "returned nil"
    if not isinstance(body, str):
        return "FAILED"
    return f"returned {len(body)} bytes"
