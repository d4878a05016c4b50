from pydantic import RedisDsn
from pydantic_settings import SettingsConfigDict

from virgo.holdings.service.configuration.service_configuration import (
    ServiceConfiguration,
)


class RedisConfiguration(ServiceConfiguration):
    # Without a url the engine caches in process memory instead.
    url: RedisDsn | None = None
    key_prefix: str = "virgo"
    model_config = SettingsConfigDict(env_prefix="VIRGO_REDIS_")

    socket_timeout: float | None = 5.0
    socket_connect_timeout: float | None = 2.0
