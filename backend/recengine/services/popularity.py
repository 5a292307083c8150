"""Popularity ranking based on the Wilson score interval"""

import math
from typing import List, Optional, Tuple

from redis import Redis

from .keys import KeyMapper
from ..utils.logging import get_logger
from ..utils.store import run_transaction

logger = get_logger(__name__)

# 95% confidence
Z_95 = 1.96


def wilson_lower_bound(likes: int, dislikes: int, z: float = Z_95) -> float:
    """
    Lower bound of the Wilson score interval for the like proportion

    Args:
        likes: Number of users that liked the item
        dislikes: Number of users that disliked the item
        z: Standard normal quantile for the desired confidence

    Returns:
        Conservative estimate of the true like proportion, 0.0 with no votes
    """
    n = likes + dislikes
    if n <= 0:
        return 0.0

    phat = likes / n
    radicand = (phat * (1 - phat) + z * z / (4 * n)) / n
    if radicand < 0:
        return 0.0

    return (phat + z * z / (2 * n) - z * math.sqrt(radicand)) / (1 + z * z / n)


class PopularityScoreEngine:
    """
    Global, non-personalized item ranking per category

    Each category has one sorted set of item -> Wilson lower bound,
    refreshed synchronously whenever the item's like/dislike counts change.
    """

    def __init__(self, redis_client: Redis, keys: KeyMapper):
        self.redis = redis_client
        self.keys = keys

    def update_popularity(self, category: str, item_id) -> float:
        """
        Recompute and store the popularity score of one item

        Items nobody has rated are dropped from the ranking. The counts are
        watched, so a vote landing in between makes the update run again.

        Returns:
            The new score
        """
        item_id = str(item_id)
        liked_by = self.keys.liked_by_set(category, item_id)
        disliked_by = self.keys.disliked_by_set(category, item_id)

        def _update(pipe) -> Tuple[int, int, float]:
            likes, dislikes = pipe.scard(liked_by), pipe.scard(disliked_by)
            pipe.multi()
            return likes, dislikes, self.queue_score(pipe, category, item_id, likes, dislikes)

        likes, dislikes, score = run_transaction(self.redis, _update, liked_by, disliked_by)

        logger.debug(
            "Updated popularity score",
            category=category,
            item_id=item_id,
            likes=likes,
            dislikes=dislikes,
            score=score,
        )
        return score

    def queue_score(self, pipe, category: str, item_id, likes: int, dislikes: int) -> float:
        """Buffer the score write for an item onto an open pipeline"""
        score_set = self.keys.score_set(category)
        if likes + dislikes <= 0:
            pipe.zrem(score_set, item_id)
            return 0.0

        score = wilson_lower_bound(likes, dislikes)
        pipe.zadd(score_set, {item_id: score})
        return score

    def score(self, category: str, item_id) -> Optional[float]:
        return self.redis.zscore(self.keys.score_set(category), str(item_id))

    def top(self, category: str, count: int = 1) -> List[str]:
        """Ids of the ``count`` highest scoring items in a category"""
        if count <= 0:
            return []
        return self.redis.zrevrange(self.keys.score_set(category), 0, count - 1)

    def top_with_scores(self, category: str, count: int = 10) -> List[Tuple[str, float]]:
        if count <= 0:
            return []
        return self.redis.zrevrange(self.keys.score_set(category), 0, count - 1, withscores=True)
