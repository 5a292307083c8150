"""Materialized per-user, per-category recommendation lists"""

from typing import Dict, List, Optional, Set, Tuple

from redis import Redis

from .keys import KeyMapper, Relation
from .prediction import PredictionEngine
from .ranking import rank_window, replace_sorted_set
from .similarity import SimilarityEngine
from ..config import Settings
from ..utils.logging import get_logger

logger = get_logger(__name__)


class RecommendationMaterializer:
    """
    Builds and stores each user's ranked recommendations

    Candidates are what the user's nearest neighbors liked and what the
    furthest neighbors disliked, minus anything the user already liked,
    disliked, hid or bookmarked. Each candidate is scored with the
    prediction engine and the sorted set is rewritten in full.
    """

    def __init__(
        self,
        redis_client: Redis,
        settings: Settings,
        keys: Optional[KeyMapper] = None,
        similarity: Optional[SimilarityEngine] = None,
        prediction: Optional[PredictionEngine] = None,
    ):
        self.redis = redis_client
        self.settings = settings
        self.keys = keys or KeyMapper.from_settings(settings)
        self.similarity = similarity or SimilarityEngine(redis_client, settings, self.keys)
        self.prediction = prediction or PredictionEngine(redis_client, settings, self.keys)

    def candidates(self, user_id, category: str) -> Set[str]:
        user_id = str(user_id)
        neighbors = self.settings.NEAREST_NEIGHBORS

        nearest = self.similarity.nearest_neighbors(user_id, neighbors)
        furthest = self.similarity.furthest_neighbors(user_id, neighbors)

        sets_to_union = [self.keys.user_set(Relation.LIKED, category, other) for other in nearest]
        sets_to_union += [self.keys.user_set(Relation.DISLIKED, category, other) for other in furthest]
        if not sets_to_union:
            return set()

        rated_sets = [self.keys.user_set(relation, category, user_id) for relation in Relation]
        temp_set = self.keys.temp_set(user_id)

        pipe = self.redis.pipeline(transaction=True)
        pipe.sunionstore(temp_set, *sets_to_union)
        pipe.sdiff(temp_set, *rated_sets)
        pipe.delete(temp_set)
        _, item_ids, _ = pipe.execute()
        return set(item_ids)

    def recompute_recommendations(self, user_id, category: str) -> int:
        """
        Rebuild the user's recommendations for one category

        Leaves the stored list untouched when there are no candidates.

        Returns:
            Number of recommendations stored
        """
        user_id = str(user_id)
        item_ids = self.candidates(user_id, category)
        if not item_ids:
            logger.debug("No recommendation candidates", user_id=user_id, category=category)
            return 0

        scores = {item_id: self.prediction.predict(user_id, category, item_id) for item_id in item_ids}
        kept = rank_window(scores, top=self.settings.RECOMMENDATIONS_TO_STORE)

        stored = replace_sorted_set(
            self.redis,
            self.keys.recommended_set(category, user_id),
            kept,
            owner=user_id,
            reverse_key=lambda item_id: self.keys.recommended_to_set(category, item_id),
            live_keys=lambda item_id: [
                self.keys.liked_by_set(category, item_id),
                self.keys.disliked_by_set(category, item_id),
            ],
        )
        logger.info(
            "Recomputed recommendations",
            user_id=user_id,
            category=category,
            candidates=len(scores),
            stored=stored,
        )
        return stored

    def recompute_all(self, user_id) -> Dict[str, int]:
        return {
            category: self.recompute_recommendations(user_id, category)
            for category in self.settings.CATEGORIES
        }

    def recommended_for(self, user_id, category: str, limit: int = 10, offset: int = 0) -> List[str]:
        """Stored recommendations, best prediction first"""
        if limit <= 0:
            return []
        return self.redis.zrevrange(self.keys.recommended_set(category, user_id), offset, offset + limit - 1)

    def recommended_with_scores(
        self, user_id, category: str, limit: int = 10, offset: int = 0
    ) -> List[Tuple[str, float]]:
        if limit <= 0:
            return []
        return self.redis.zrevrange(
            self.keys.recommended_set(category, user_id), offset, offset + limit - 1, withscores=True
        )

    def recommended_count(self, user_id, category: str) -> int:
        return self.redis.zcard(self.keys.recommended_set(category, user_id))
