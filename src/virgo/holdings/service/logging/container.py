from __future__ import annotations

from logging import Handler

from dependency_injector import providers
from dependency_injector.containers import DeclarativeContainer

from virgo.holdings.service.logging.configuration import LogLevel
from virgo.holdings.service.logging.log import (
    create_formatter,
    create_stream_handler,
    setup_logging,
)


class Logging(DeclarativeContainer):
    config = providers.Configuration()

    formatter = providers.Singleton(create_formatter, use_json=config.json_format)

    stream_handler: providers.Provider[Handler] = providers.Singleton(
        create_stream_handler, formatter=formatter
    )

    init_logging: providers.Provider[None] = providers.Resource(
        setup_logging,
        level=config.level.as_(LogLevel),
        verbose_level=config.verbose_level.as_(LogLevel),
        stream=stream_handler,
    )
