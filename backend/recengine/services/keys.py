"""Redis key layout for the recommendation engine"""

from enum import Enum
from typing import Optional, Union

from ..config import Settings


class Relation(str, Enum):
    """Ways a user can mark an item"""

    LIKED = "liked"
    DISLIKED = "disliked"
    HIDDEN = "hidden"
    BOOKMARKED = "bookmarked"

    @property
    def reverse(self) -> str:
        """Name of the per-item set holding the users with this relation"""
        return f"{self.value}_by"


class KeyMapper:
    """
    Derives every Redis key the engine touches

    Keys are built from (namespace, collection, id, relation) joined with
    ``:``. No other component formats keys itself.

    Layout::

        <ns>:users:<user>:liked_<category>       set of item ids
        <ns>:users:<user>:recommended_<category> zset item -> prediction
        <ns>:users:<user>:similarities           zset user -> similarity
        <ns>:users:<user>:neighbor_of            set of user ids
        <ns>:<category>:<item>:liked_by          set of user ids
        <ns>:<category>:<item>:recommended_to    set of user ids
        <ns>:<category>:scores                   zset item -> popularity
    """

    def __init__(self, namespace: Optional[str] = None, user_collection: str = "users"):
        self.namespace = namespace
        self.user_collection = user_collection

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyMapper":
        return cls(settings.REDIS_NAMESPACE, settings.USER_COLLECTION)

    def _join(self, *parts) -> str:
        return ":".join(str(part) for part in (self.namespace, *parts) if part is not None)

    # User-side keys

    def user_set(self, relation: Union[Relation, str], category: str, user_id) -> str:
        """Set of item ids the user has marked with ``relation`` in ``category``"""
        relation = Relation(relation)
        return self._join(self.user_collection, user_id, f"{relation.value}_{category}")

    def recommended_set(self, category: str, user_id) -> str:
        return self._join(self.user_collection, user_id, f"recommended_{category}")

    def similarity_set(self, user_id) -> str:
        return self._join(self.user_collection, user_id, "similarities")

    def neighbor_of_set(self, user_id) -> str:
        """Users whose similarity set currently names ``user_id``"""
        return self._join(self.user_collection, user_id, "neighbor_of")

    def temp_set(self, user_id) -> str:
        return self._join(self.user_collection, user_id, "temp")

    # Item-side keys

    def item_set(self, relation: Union[Relation, str], category: str, item_id) -> str:
        """Reverse index: users that have marked the item with ``relation``"""
        return self._join(category, item_id, Relation(relation).reverse)

    def liked_by_set(self, category: str, item_id) -> str:
        return self.item_set(Relation.LIKED, category, item_id)

    def disliked_by_set(self, category: str, item_id) -> str:
        return self.item_set(Relation.DISLIKED, category, item_id)

    def recommended_to_set(self, category: str, item_id) -> str:
        return self._join(category, item_id, "recommended_to")

    def score_set(self, category: str) -> str:
        return self._join(category, "scores")
