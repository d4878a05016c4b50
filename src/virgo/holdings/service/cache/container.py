from dependency_injector import providers
from dependency_injector.containers import DeclarativeContainer

from virgo.holdings.service.cache.store import (
    CacheStore,
    MemoryCacheStore,
    RedisCacheStore,
)
from virgo.holdings.service.redis.redis import Redis


class CacheContainer(DeclarativeContainer):
    config = providers.Configuration()

    redis_client: providers.Dependency[Redis] = providers.Dependency()

    store: providers.Provider[CacheStore] = providers.Selector(
        config.backend,
        redis=providers.Singleton(RedisCacheStore, client=redis_client),
        memory=providers.Singleton(MemoryCacheStore),
    )
