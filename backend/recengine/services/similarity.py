"""User-user similarity from agreeing and disagreeing ratings"""

from typing import Dict, List, Optional, Set, Tuple

from redis import Redis

from .keys import KeyMapper, Relation
from .ranking import rank_window, replace_sorted_set
from ..config import Settings
from ..exceptions import UndefinedSimilarityError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class SimilarityEngine:
    """
    Pairwise user similarity in [-1.0, 1.0]

    For every registered category, items both users liked or both disliked
    count as agreements and items one liked while the other disliked count
    as disagreements. The net agreement is divided by the number of items
    the first user rated, which makes the measure asymmetric:
    ``similarity(a, b)`` need not equal ``similarity(b, a)``.
    """

    def __init__(self, redis_client: Redis, settings: Settings, keys: Optional[KeyMapper] = None):
        self.redis = redis_client
        self.settings = settings
        self.keys = keys or KeyMapper.from_settings(settings)

    def similarity(self, user_id, other_user_id) -> float:
        """
        Similarity of ``user_id`` towards ``other_user_id``

        Raises:
            UndefinedSimilarityError: If ``user_id`` has rated nothing
        """
        user_id, other_user_id = str(user_id), str(other_user_id)

        pipe = self.redis.pipeline(transaction=False)
        for category in self.settings.CATEGORIES:
            liked = self.keys.user_set(Relation.LIKED, category, user_id)
            disliked = self.keys.user_set(Relation.DISLIKED, category, user_id)
            other_liked = self.keys.user_set(Relation.LIKED, category, other_user_id)
            other_disliked = self.keys.user_set(Relation.DISLIKED, category, other_user_id)

            # Agreements
            pipe.sinter(liked, other_liked)
            pipe.sinter(disliked, other_disliked)
            # Disagreements
            pipe.sinter(liked, other_disliked)
            pipe.sinter(disliked, other_liked)

            pipe.scard(liked)
            pipe.scard(disliked)
        results = pipe.execute()

        numerator = 0
        denominator = 0
        for offset in range(0, len(results), 6):
            agree_liked, agree_disliked, liked_disliked, disliked_liked, liked_count, disliked_count = (
                results[offset:offset + 6]
            )
            numerator += len(agree_liked) + len(agree_disliked)
            numerator -= len(liked_disliked) + len(disliked_liked)
            denominator += liked_count + disliked_count

        if denominator == 0:
            raise UndefinedSimilarityError(user_id, other_user_id)

        return numerator / float(denominator)

    def candidates(self, user_id) -> Set[str]:
        """Users who rated at least one item ``user_id`` rated"""
        user_id = str(user_id)
        relevant: Set[str] = set()

        for category in self.settings.CATEGORIES:
            item_ids = self.redis.sunion(
                self.keys.user_set(Relation.LIKED, category, user_id),
                self.keys.user_set(Relation.DISLIKED, category, user_id),
            )
            if not item_ids:
                continue

            reverse_sets = []
            for item_id in item_ids:
                reverse_sets.append(self.keys.liked_by_set(category, item_id))
                reverse_sets.append(self.keys.disliked_by_set(category, item_id))
            relevant |= self.redis.sunion(*reverse_sets)

        relevant.discard(user_id)
        return relevant

    def recompute_neighbors(self, user_id) -> int:
        """
        Rebuild the user's similarity set from scratch

        Pairs whose similarity is undefined are skipped. When a nearest
        neighbor bound is configured only the nearest K and furthest F
        users are kept.

        Returns:
            Number of neighbors stored
        """
        user_id = str(user_id)

        scores: Dict[str, float] = {}
        for other_user_id in self.candidates(user_id):
            try:
                scores[other_user_id] = self.similarity(user_id, other_user_id)
            except UndefinedSimilarityError:
                logger.debug("Skipping undefined similarity", user_id=user_id, other_user_id=other_user_id)

        kept = rank_window(
            scores,
            top=self.settings.NEAREST_NEIGHBORS,
            bottom=self.settings.FURTHEST_NEIGHBORS or 0,
        )

        stored = replace_sorted_set(
            self.redis,
            self.keys.similarity_set(user_id),
            kept,
            owner=user_id,
            reverse_key=self.keys.neighbor_of_set,
            live_keys=self._rating_keys,
        )
        logger.info(
            "Recomputed similarities",
            user_id=user_id,
            candidates=len(scores),
            stored=stored,
        )
        return stored

    def _rating_keys(self, user_id) -> List[str]:
        """Keys that exist while the user still has a rating somewhere"""
        return [
            self.keys.user_set(relation, category, user_id)
            for category in self.settings.CATEGORIES
            for relation in (Relation.LIKED, Relation.DISLIKED)
        ]

    def stored_similarity(self, user_id, other_user_id) -> Optional[float]:
        return self.redis.zscore(self.keys.similarity_set(user_id), str(other_user_id))

    def nearest_neighbors(self, user_id, count: Optional[int] = None, offset: int = 0) -> List[str]:
        """Most similar users first; all of them when ``count`` is None"""
        end = -1 if count is None else offset + count - 1
        if count is not None and count <= 0:
            return []
        return self.redis.zrevrange(self.keys.similarity_set(user_id), offset, end)

    def furthest_neighbors(self, user_id, count: Optional[int] = None, offset: int = 0) -> List[str]:
        """Least similar users first; all of them when ``count`` is None"""
        end = -1 if count is None else offset + count - 1
        if count is not None and count <= 0:
            return []
        return self.redis.zrange(self.keys.similarity_set(user_id), offset, end)

    def similar_raters(self, user_id, limit: int = 10, offset: int = 0) -> List[Tuple[str, float]]:
        if limit <= 0:
            return []
        return self.redis.zrevrange(
            self.keys.similarity_set(user_id), offset, offset + limit - 1, withscores=True
        )
