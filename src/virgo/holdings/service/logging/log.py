from __future__ import annotations

import json
import logging
import socket
import threading
from collections.abc import Mapping, Sequence
from logging import Handler
from typing import Any

from pydantic_core import to_jsonable_python

from virgo.holdings.service.logging.configuration import LogLevel
from virgo.holdings.util.datetime_helpers import from_timestamp


def json_serializer(obj: Any) -> str:
    return json.dumps(obj, default=to_jsonable_python)


class JSONFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__()
        self.hostname = socket.getfqdn()
        self.main_thread_id = threading.main_thread().ident

    @staticmethod
    def _is_json_serializable(v: Any) -> bool:
        try:
            json_serializer(v)
            return True
        except (TypeError, ValueError):
            return False

    def format(self, record: logging.LogRecord) -> str:
        def ensure_str(s: Any) -> Any:
            """Ensure that unicode strings are used for a record's message.
            We don't want to try to interpolate an incompatible byte type; it
            could lead to a UnicodeDecodeError.
            """
            if isinstance(s, bytes):
                s = s.decode("utf-8")
            return s

        message = ensure_str(record.msg)
        if record.args:
            record_args: tuple[Any, ...] | dict[str, Any] | None = None
            if isinstance(record.args, Mapping):
                record_args = {
                    ensure_str(k): ensure_str(v) for k, v in record.args.items()
                }
            elif isinstance(record.args, Sequence):
                record_args = tuple(ensure_str(arg) for arg in record.args)

            if record_args is not None:
                try:
                    message = message % record_args
                except Exception as e:
                    # A broken log call must not break the code doing the
                    # work, but the problem still has to show up in the log.
                    message = (
                        "Log message could not be formatted. Exception: %r. Original message: message=%r args=%r"
                        % (e, message, record_args)
                    )
        data: dict[str, Any] = dict(
            host=self.hostname,
            name=record.name,
            level=record.levelname,
            filename=record.filename,
            message=message,
            timestamp=from_timestamp(record.created).isoformat(),
        )
        if record.exc_info:
            data["traceback"] = self.formatException(record.exc_info)
        if record.process:
            data["process"] = record.process
        if record.thread and record.thread != self.main_thread_id:
            data["thread"] = record.thread
        if record.stack_info:
            data["stack"] = self.formatStack(record.stack_info)

        # Custom 'firehose_' prefixed attributes added through `extra` are
        # included with the prefix removed.
        for key, value in record.__dict__.items():
            if (
                key != (log_data_key := key.removeprefix("firehose_"))
                and value is not None
                and self._is_json_serializable(value)
                and log_data_key not in data
            ):
                data[log_data_key] = value

        return json_serializer(data)


def create_stream_handler(formatter: logging.Formatter) -> logging.Handler:
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    return stream_handler


def create_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return JSONFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")


def setup_logging(
    level: LogLevel,
    verbose_level: LogLevel,
    stream: Handler,
) -> None:
    # Set up the root logger
    logging.basicConfig(force=True, level=level.value, handlers=[stream])

    # Set the loggers for various verbose libraries to the verbose
    # log level, which is probably higher than the normal log level.
    for logger in (
        "requests.packages.urllib3.connectionpool",
        "urllib3.connectionpool",
        "redis",
    ):
        logging.getLogger(logger).setLevel(verbose_level.value)
