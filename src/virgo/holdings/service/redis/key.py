from virgo.holdings.service.redis.exception import RedisKeyError


class RedisKeyGenerator:
    """Build namespaced redis keys: `<prefix>::<part>::<part>...`."""

    SEPERATOR = "::"

    def __init__(self, prefix: str):
        self.prefix = prefix

    def _stringify(self, key: str | int) -> str:
        if isinstance(key, str):
            return key
        elif isinstance(key, int):
            return str(key)
        else:
            raise RedisKeyError(
                f"Unsupported key type: {key} ({key.__class__.__name__})"
            )

    def __call__(self, *args: str | int) -> str:
        key_strings = [self._stringify(k) for k in args]
        return self.SEPERATOR.join([self.prefix, *key_strings])
