import datetime

from pydantic import HttpUrl
from pydantic_settings import SettingsConfigDict

from virgo.holdings.service.configuration.service_configuration import (
    ServiceConfiguration,
)


class FirehoseConfiguration(ServiceConfiguration):
    url: HttpUrl = HttpUrl("http://localhost:8080/firehose2")

    # When set, requests are run with curl on this host over ssh.
    proxy_host: str | None = None
    proxy_user: str | None = None

    # Seconds to wait for the ILS before giving up.
    timeout: float = 5
    # Retries for idempotent GET requests. POSTs are never retried.
    retries: int = 1

    # Cache lifetimes: reference lists, item lookups, patron lookups.
    slow_expire: datetime.timedelta = datetime.timedelta(hours=1)
    fast_expire: datetime.timedelta = datetime.timedelta(minutes=5)
    instant_expire: datetime.timedelta = datetime.timedelta(seconds=5)

    caching_enabled: bool = True

    model_config = SettingsConfigDict(env_prefix="VIRGO_FIREHOSE_")

    @property
    def base_url(self) -> str:
        return str(self.url).rstrip("/")
