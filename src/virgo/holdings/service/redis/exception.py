from virgo.holdings.core.exceptions import BaseHoldingsException


class RedisKeyError(BaseHoldingsException, TypeError): ...


class RedisValueError(BaseHoldingsException, ValueError): ...
