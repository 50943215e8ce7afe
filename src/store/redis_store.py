"""Redis-backed counter store.

Each rate limit scope is one hash: field = bucket index, value = count.
The hit runs as a Lua script so the increment, the pruning of stale
buckets and the read-back happen in one atomic server-side step.
"""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.core.errors import StoreUnavailable
from src.store.base import CounterStore

# KEYS[1]  counter hash
# ARGV[1]  current bucket
# ARGV[2]  oldest bucket still in window
# ARGV[3]  ttl in milliseconds
_LUA_HIT = r"""
local key = KEYS[1]
local oldest = tonumber(ARGV[2])

redis.call("HINCRBY", key, ARGV[1], 1)

local fields = redis.call("HGETALL", key)
local out = {}
for i = 1, #fields, 2 do
  local b = tonumber(fields[i])
  if b < oldest then
    redis.call("HDEL", key, fields[i])
  else
    table.insert(out, b)
    table.insert(out, tonumber(fields[i + 1]))
  end
end

redis.call("PEXPIRE", key, tonumber(ARGV[3]))
return out
"""


class RedisCounterStore(CounterStore):
    """Counter store on any Redis-protocol server (Redis, Valkey, Upstash)."""

    def __init__(self, url: str, client: Redis | None = None):
        self._url = url
        self._redis = client
        self._hit_script = None

    def _get_client(self) -> Redis:
        """Lazy-init the connection pool and register the hit script."""
        if self._redis is None:
            self._redis = Redis.from_url(self._url, decode_responses=True)
        if self._hit_script is None:
            self._hit_script = self._redis.register_script(_LUA_HIT)
        return self._redis

    async def hit(self, key: str, bucket: int, oldest_bucket: int, ttl_seconds: int) -> dict[int, int]:
        self._get_client()
        try:
            flat = await self._hit_script(
                keys=[key],
                args=[bucket, oldest_bucket, ttl_seconds * 1000],
            )
        except RedisError as e:
            raise StoreUnavailable(f"Counter store error: {e}") from e

        return {int(flat[i]): int(flat[i + 1]) for i in range(0, len(flat), 2)}

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        client = self._get_client()
        try:
            await client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise StoreUnavailable(f"Counter store error: {e}") from e

    async def get(self, key: str) -> str | None:
        client = self._get_client()
        try:
            value = await client.get(key)
        except RedisError as e:
            raise StoreUnavailable(f"Counter store error: {e}") from e

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self._hit_script = None
