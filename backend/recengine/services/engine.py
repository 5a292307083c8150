"""Wiring of the recommendation components around one Redis client"""

from typing import Callable, Dict, Optional

from redis import Redis

from .hooks import HookDispatcher
from .interactions import InteractionStore
from .keys import KeyMapper
from .popularity import PopularityScoreEngine
from .prediction import PredictionEngine
from .recommendations import RecommendationMaterializer
from .similarity import SimilarityEngine
from ..config import Settings
from ..utils.store import create_redis_client


class RecommendationEngine:
    """
    Entry point to the recommendation engine

    Owns one instance of each component, all sharing the same settings,
    key layout and Redis client. ``enqueue`` is called with a user id after
    every like/dislike change when ``AUTO_ENQUEUE`` is on; the host decides
    how the user's batch jobs actually get scheduled.
    """

    def __init__(
        self,
        settings: Settings,
        redis_client: Optional[Redis] = None,
        enqueue: Optional[Callable[[str], object]] = None,
        hooks: Optional[HookDispatcher] = None,
    ):
        self.settings = settings
        self.redis = redis_client or create_redis_client(settings)
        self.keys = KeyMapper.from_settings(settings)
        self.hooks = hooks or HookDispatcher()

        self.popularity = PopularityScoreEngine(self.redis, self.keys)
        self.similarity = SimilarityEngine(self.redis, settings, self.keys)
        self.prediction = PredictionEngine(self.redis, settings, self.keys)
        self.recommendations = RecommendationMaterializer(
            self.redis, settings, self.keys, self.similarity, self.prediction
        )
        self.interactions = InteractionStore(
            self.redis,
            settings,
            keys=self.keys,
            hooks=self.hooks,
            popularity=self.popularity,
            enqueue=enqueue,
        )

    def refresh_user(self, user_id) -> Dict[str, int]:
        """Recompute a user's neighbors, then their recommendations in every category"""
        self.similarity.recompute_neighbors(user_id)
        return self.recommendations.recompute_all(user_id)

    def purge_user(self, user_id) -> int:
        return self.interactions.purge_user(user_id)

    def purge_item(self, category: str, item_id) -> int:
        return self.interactions.purge_item(category, item_id)

    def health_check(self) -> bool:
        try:
            return bool(self.redis.ping())
        except Exception:
            return False
