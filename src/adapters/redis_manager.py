"""
Redis connection manager.

The result cache stores pickled bytes, the feedback store stores plain strings,
so the manager hands out one client per decoding mode for the same server.
"""

from dataclasses import dataclass

from redis.asyncio import Redis

from adapters.config import Settings
from utils.get_logger import get_logger

logger = get_logger(__name__)


@dataclass
class RedisConfig:
    host: str
    port: int
    password: str | None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisConfig":
        return cls(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
        )


class RedisManager:
    """Lazily creates and caches Redis clients for one server."""

    def __init__(self, config: RedisConfig):
        self.config = config
        self._connections: dict[bool, Redis] = {}

    def get_redis(self, decode_responses: bool = True) -> Redis:
        if decode_responses not in self._connections:
            self._connections[decode_responses] = Redis(
                host=self.config.host,
                port=self.config.port,
                password=self.config.password,
                decode_responses=decode_responses,
                socket_timeout=5.0,
                socket_connect_timeout=5.0,
            )
            logger.info(
                f"Redis client created for {self.config.host}:{self.config.port} "
                f"(decode_responses={decode_responses})"
            )
        return self._connections[decode_responses]

    async def close(self) -> None:
        for client in self._connections.values():
            await client.aclose()
        self._connections.clear()
