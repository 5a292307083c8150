"""Signed preference prediction from neighbor similarities"""

import math
from typing import Optional

from redis import Redis

from .keys import KeyMapper
from ..config import Settings


class PredictionEngine:
    """
    Predicts how a user will feel about an item

    The prediction is the mean similarity between the user and everyone who
    rated the item, with dislikers counted negatively. 0.0 is neutral;
    positive values lean towards a like and negative values towards a
    dislike. Raters missing from the user's similarity set contribute 0.
    """

    def __init__(self, redis_client: Redis, settings: Settings, keys: Optional[KeyMapper] = None):
        self.redis = redis_client
        self.settings = settings
        self.keys = keys or KeyMapper.from_settings(settings)

    def predict(self, user_id, category: str, item_id) -> float:
        user_id, item_id = str(user_id), str(item_id)
        similarity_set = self.keys.similarity_set(user_id)

        liked_by = self.redis.smembers(self.keys.liked_by_set(category, item_id))
        disliked_by = self.redis.smembers(self.keys.disliked_by_set(category, item_id))
        raters = len(liked_by) + len(disliked_by)
        if raters == 0:
            return 0.0

        pipe = self.redis.pipeline(transaction=False)
        for rater_id in liked_by:
            pipe.zscore(similarity_set, rater_id)
        for rater_id in disliked_by:
            pipe.zscore(similarity_set, rater_id)
        similarities = [float(score or 0.0) for score in pipe.execute()]

        similarity_sum = sum(similarities[:len(liked_by)]) - sum(similarities[len(liked_by):])
        prediction = similarity_sum / raters
        return prediction if math.isfinite(prediction) else 0.0
