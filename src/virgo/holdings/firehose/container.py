from dependency_injector import providers
from dependency_injector.containers import DeclarativeContainer

from virgo.holdings.firehose.api import FirehoseApi
from virgo.holdings.firehose.circulation import FirehoseCirculation
from virgo.holdings.firehose.configuration import FirehoseConfiguration
from virgo.holdings.service.cache.store import CacheStore


class FirehoseContainer(DeclarativeContainer):
    config = providers.Configuration()

    cache: providers.Dependency[CacheStore] = providers.Dependency()

    settings: providers.Provider[FirehoseConfiguration] = providers.Singleton(
        FirehoseConfiguration.model_validate, config
    )

    api: providers.Provider[FirehoseApi] = providers.Singleton(
        FirehoseApi, settings=settings, cache=cache
    )

    circulation: providers.Provider[FirehoseCirculation] = providers.Singleton(
        FirehoseCirculation, api=api
    )
