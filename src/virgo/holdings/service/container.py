from dependency_injector import providers
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Container

from virgo.holdings.firehose.configuration import FirehoseConfiguration
from virgo.holdings.firehose.container import FirehoseContainer
from virgo.holdings.service.cache.container import CacheContainer
from virgo.holdings.service.logging.configuration import LoggingConfiguration
from virgo.holdings.service.logging.container import Logging
from virgo.holdings.service.redis.configuration import RedisConfiguration
from virgo.holdings.service.redis.container import RedisContainer


class Services(DeclarativeContainer):
    config = providers.Configuration()

    logging = Container(
        Logging,
        config=config.logging,
    )

    redis = Container(
        RedisContainer,
        config=config.redis,
    )

    cache = Container(
        CacheContainer,
        config=config.cache,
        redis_client=redis.client,
    )

    firehose = Container(
        FirehoseContainer,
        config=config.firehose,
        cache=cache.store,
    )


def create_container() -> Services:
    container = Services()
    redis = RedisConfiguration()
    container.config.from_dict(
        {
            "logging": LoggingConfiguration().model_dump(),
            "redis": redis.model_dump(),
            # Without a redis url, cache in process memory.
            "cache": {"backend": "redis" if redis.url else "memory"},
            "firehose": FirehoseConfiguration().model_dump(),
        }
    )
    return container


_container_instance: Services | None = None


def container_instance() -> Services:
    # A process-wide container, for callers that are not handed one.
    global _container_instance
    if _container_instance is None:
        _container_instance = create_container()
    return _container_instance
