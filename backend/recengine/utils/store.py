"""Redis connection management"""

from typing import Any, Callable

from redis import Redis
from redis.exceptions import WatchError

from ..config import Settings
from ..exceptions import ConcurrentUpdateError
from .logging import get_logger

logger = get_logger(__name__)

# WATCH conflicts tolerated before a transaction gives up
MAX_TRANSACTION_ATTEMPTS = 10


def create_redis_client(settings: Settings) -> Redis:
    """
    Create the Redis client backing the engine

    Responses are decoded so set members come back as ``str`` ids, and
    every call is bounded by ``REDIS_SOCKET_TIMEOUT``.
    """
    return Redis.from_url(
        settings.REDIS_URL,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
        decode_responses=True,
    )


def run_transaction(
    redis_client: Redis,
    func: Callable[[Any], Any],
    *watches: str,
    attempts: int = MAX_TRANSACTION_ATTEMPTS,
) -> Any:
    """
    Run ``func`` as one optimistic WATCH/MULTI/EXEC transaction

    ``func`` receives a pipeline with ``watches`` already watched, reads
    what it needs, calls ``pipe.multi()`` and queues its writes. When a
    watched key changes before EXEC the whole callable runs again, at
    most ``attempts`` times.

    Returns:
        Whatever ``func`` returned on the attempt that committed

    Raises:
        ConcurrentUpdateError: If every attempt lost a WATCH race
    """
    with redis_client.pipeline(transaction=True) as pipe:
        for attempt in range(1, attempts + 1):
            try:
                if watches:
                    pipe.watch(*watches)
                result = func(pipe)
                pipe.execute()
                return result
            except WatchError:
                logger.debug("Transaction conflict", attempt=attempt, keys=list(watches))

    logger.warning("Transaction abandoned", attempts=attempts, keys=list(watches))
    raise ConcurrentUpdateError(attempts)
