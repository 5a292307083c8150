"""Like/dislike/hide/bookmark membership sets and their reverse indices"""

from collections import namedtuple
from functools import partial
from typing import Callable, Dict, List, Optional, Set, Union

from redis import Redis

from .hooks import HookDispatcher
from .keys import KeyMapper, Relation
from .popularity import PopularityScoreEngine
from ..config import Settings
from ..exceptions import NotRecommendableError
from ..utils.logging import get_logger
from ..utils.metrics import record_interaction, record_purge
from ..utils.store import run_transaction

logger = get_logger(__name__)


# relation: set the action writes to
# add: whether the item is added to (True) or removed from (False) that set
# clears: relations the item is removed from in the same transaction
# unrecommend: whether the item leaves the user's stored recommendations
# rescore: whether the item's popularity changes and the user's batch jobs are due
Action = namedtuple("Action", ["relation", "add", "clears", "unrecommend", "rescore"])

ACTIONS: Dict[str, Action] = {
    "like": Action(Relation.LIKED, True, (Relation.DISLIKED, Relation.HIDDEN), True, True),
    "unlike": Action(Relation.LIKED, False, (), False, True),
    "dislike": Action(Relation.DISLIKED, True, (Relation.LIKED, Relation.HIDDEN), True, True),
    "undislike": Action(Relation.DISLIKED, False, (), False, True),
    "hide": Action(Relation.HIDDEN, True, (), True, False),
    "unhide": Action(Relation.HIDDEN, False, (), False, False),
    "bookmark": Action(Relation.BOOKMARKED, True, (), True, False),
    "unbookmark": Action(Relation.BOOKMARKED, False, (), False, False),
}

RATINGS = (Relation.LIKED, Relation.DISLIKED)


class InteractionStore:
    """
    CRUD over a user's interaction sets

    Every mutation touches both sides of the relation (the user's set of
    item ids and the item's set of user ids) inside one MULTI/EXEC, with
    WATCH on the sets that were read, so no partial membership is ever
    committed.
    """

    def __init__(
        self,
        redis_client: Redis,
        settings: Settings,
        keys: Optional[KeyMapper] = None,
        hooks: Optional[HookDispatcher] = None,
        popularity: Optional[PopularityScoreEngine] = None,
        enqueue: Optional[Callable[[str], object]] = None,
    ):
        self.redis = redis_client
        self.settings = settings
        self.keys = keys or KeyMapper.from_settings(settings)
        self.hooks = hooks or HookDispatcher()
        self.popularity = popularity or PopularityScoreEngine(redis_client, self.keys)
        self.enqueue = enqueue

    @property
    def categories(self) -> List[str]:
        return list(self.settings.CATEGORIES)

    def check_category(self, category: str) -> None:
        if not self.settings.is_registered(category):
            raise NotRecommendableError(category)

    # Mutations

    def like(self, user_id, category: str, item_id) -> bool:
        """
        Like an item, removing it from the user's dislikes and hidden items

        Returns:
            True if the item was liked, False if it already was (or a hook vetoed)

        Raises:
            NotRecommendableError: If the category was never registered
        """
        return self._interact("like", user_id, category, item_id)

    def unlike(self, user_id, category: str, item_id) -> bool:
        return self._interact("unlike", user_id, category, item_id)

    def dislike(self, user_id, category: str, item_id) -> bool:
        """Dislike an item, removing it from the user's likes and hidden items"""
        return self._interact("dislike", user_id, category, item_id)

    def undislike(self, user_id, category: str, item_id) -> bool:
        return self._interact("undislike", user_id, category, item_id)

    def hide(self, user_id, category: str, item_id) -> bool:
        """Keep an item out of future recommendations without rating it"""
        return self._interact("hide", user_id, category, item_id)

    def unhide(self, user_id, category: str, item_id) -> bool:
        return self._interact("unhide", user_id, category, item_id)

    def bookmark(self, user_id, category: str, item_id) -> bool:
        return self._interact("bookmark", user_id, category, item_id)

    def unbookmark(self, user_id, category: str, item_id) -> bool:
        return self._interact("unbookmark", user_id, category, item_id)

    def unrate(self, user_id, category: str, item_id) -> bool:
        """Clear the like, dislike or hide on an item, and its bookmark"""
        cleared = (
            self.unlike(user_id, category, item_id)
            or self.undislike(user_id, category, item_id)
            or self.unhide(user_id, category, item_id)
        )
        unbookmarked = self.unbookmark(user_id, category, item_id)
        return cleared or unbookmarked

    def unrecommend(self, user_id, category: str, item_id) -> bool:
        """Drop an item from the user's stored recommendations"""
        self.check_category(category)
        user_id, item_id = str(user_id), str(item_id)

        pipe = self.redis.pipeline(transaction=True)
        self._queue_unrecommend(pipe, user_id, category, item_id)
        removed, _ = pipe.execute()
        return bool(removed)

    def _interact(self, action_name: str, user_id, category: str, item_id) -> bool:
        self.check_category(category)
        user_id, item_id = str(user_id), str(item_id)
        action = ACTIONS[action_name]

        if self.contains(action.relation, user_id, category, item_id) == action.add:
            return False

        if not self.hooks.before(action_name, user_id, category, item_id):
            return False

        user_key = self.keys.user_set(action.relation, category, user_id)
        score = run_transaction(
            self.redis,
            partial(self._write_action, action, user_id, category, item_id),
            user_key,
        )
        if score is None:
            return False

        logger.debug(
            "Recorded interaction",
            action=action_name,
            user_id=user_id,
            category=category,
            item_id=item_id,
            score=score if action.rescore else None,
        )
        record_interaction(action_name)

        self.hooks.after(action_name, user_id, category, item_id)

        if action.rescore and self.settings.AUTO_ENQUEUE and self.enqueue is not None:
            try:
                self.enqueue(user_id)
            except Exception as e:
                # The interaction is committed; the next refresh picks it up
                logger.error("Failed to enqueue refresh", user_id=user_id, error=str(e), exc_info=True)

        return True

    def _write_action(self, action: Action, user_id: str, category: str, item_id: str, pipe) -> Optional[float]:
        user_key = self.keys.user_set(action.relation, category, user_id)
        item_key = self.keys.item_set(action.relation, category, item_id)

        # Lost a race against an identical request
        if bool(pipe.sismember(user_key, item_id)) == action.add:
            return None

        if action.rescore:
            liked_by = self.keys.liked_by_set(category, item_id)
            disliked_by = self.keys.disliked_by_set(category, item_id)
            pipe.watch(liked_by, disliked_by)
            # Counts as they will be once this action commits
            likes = pipe.scard(liked_by) + self._vote_change(pipe, action, Relation.LIKED, liked_by, user_id)
            dislikes = pipe.scard(disliked_by) + self._vote_change(
                pipe, action, Relation.DISLIKED, disliked_by, user_id
            )

        pipe.multi()
        for relation in action.clears:
            pipe.srem(self.keys.user_set(relation, category, user_id), item_id)
            pipe.srem(self.keys.item_set(relation, category, item_id), user_id)

        if action.add:
            pipe.sadd(user_key, item_id)
            pipe.sadd(item_key, user_id)
        else:
            pipe.srem(user_key, item_id)
            pipe.srem(item_key, user_id)

        if action.unrecommend:
            self._queue_unrecommend(pipe, user_id, category, item_id)

        if action.rescore:
            return self.popularity.queue_score(pipe, category, item_id, likes, dislikes)
        return 0.0

    @staticmethod
    def _vote_change(pipe, action: Action, relation: Relation, reverse_key: str, user_id: str) -> int:
        """How the action moves the count of ``reverse_key``: -1, 0 or +1"""
        if action.relation == relation:
            after = action.add
        elif relation in action.clears:
            after = False
        else:
            return 0
        before = bool(pipe.sismember(reverse_key, user_id))
        return int(after) - int(before)

    def _queue_unrecommend(self, pipe, user_id: str, category: str, item_id: str) -> None:
        pipe.zrem(self.keys.recommended_set(category, user_id), item_id)
        pipe.srem(self.keys.recommended_to_set(category, item_id), user_id)

    # Queries

    def contains(self, relation: Union[Relation, str], user_id, category: str, item_id) -> bool:
        return bool(self.redis.sismember(self.keys.user_set(relation, category, user_id), str(item_id)))

    def likes(self, user_id, category: str, item_id) -> bool:
        return self.contains(Relation.LIKED, user_id, category, item_id)

    def dislikes(self, user_id, category: str, item_id) -> bool:
        return self.contains(Relation.DISLIKED, user_id, category, item_id)

    def hides(self, user_id, category: str, item_id) -> bool:
        return self.contains(Relation.HIDDEN, user_id, category, item_id)

    def bookmarks(self, user_id, category: str, item_id) -> bool:
        return self.contains(Relation.BOOKMARKED, user_id, category, item_id)

    def rated(self, user_id, category: str, item_id) -> bool:
        return self.likes(user_id, category, item_id) or self.dislikes(user_id, category, item_id)

    def ids(self, relation: Union[Relation, str], user_id, category: str) -> Set[str]:
        return self.redis.smembers(self.keys.user_set(relation, category, user_id))

    def count(self, relation: Union[Relation, str], user_id, category: str) -> int:
        return self.redis.scard(self.keys.user_set(relation, category, user_id))

    def in_common_with(self, relation: Union[Relation, str], user_id, other_user_id, category: str) -> Set[str]:
        """Item ids both users have marked with ``relation`` in ``category``"""
        return self.redis.sinter(
            self.keys.user_set(relation, category, user_id),
            self.keys.user_set(relation, category, other_user_id),
        )

    def all_ids(self, relation: Union[Relation, str], user_id) -> Dict[str, Set[str]]:
        """Item ids per registered category"""
        return {category: self.ids(relation, user_id, category) for category in self.categories}

    def total_count(self, relation: Union[Relation, str], user_id) -> int:
        return sum(self.count(relation, user_id, category) for category in self.categories)

    def all_in_common_with(self, relation: Union[Relation, str], user_id, other_user_id) -> Dict[str, Set[str]]:
        return {
            category: self.in_common_with(relation, user_id, other_user_id, category)
            for category in self.categories
        }

    def rated_anything(self, user_id) -> bool:
        return any(self.total_count(relation, user_id) > 0 for relation in RATINGS)

    def liked_by_ids(self, category: str, item_id) -> Set[str]:
        return self.redis.smembers(self.keys.liked_by_set(category, item_id))

    def disliked_by_ids(self, category: str, item_id) -> Set[str]:
        return self.redis.smembers(self.keys.disliked_by_set(category, item_id))

    def liked_by_count(self, category: str, item_id) -> int:
        return self.redis.scard(self.keys.liked_by_set(category, item_id))

    def disliked_by_count(self, category: str, item_id) -> int:
        return self.redis.scard(self.keys.disliked_by_set(category, item_id))

    def item_rated(self, category: str, item_id) -> bool:
        return self.liked_by_count(category, item_id) > 0 or self.disliked_by_count(category, item_id) > 0

    # Cascade deletion

    def purge_item(self, category: str, item_id) -> int:
        """
        Remove an item from every set that references it

        Uses the item's reverse indices to find the users holding it, so no
        key scan is needed. Runs as a single transaction.

        Returns:
            Number of user sets the item was removed from
        """
        self.check_category(category)
        item_id = str(item_id)

        reverse_keys = [self.keys.item_set(relation, category, item_id) for relation in Relation]
        recommended_to = self.keys.recommended_to_set(category, item_id)

        def _purge(pipe) -> int:
            holders = {relation: pipe.smembers(self.keys.item_set(relation, category, item_id)) for relation in Relation}
            recipients = pipe.smembers(recommended_to)

            pipe.multi()
            touched = 0
            for relation, user_ids in holders.items():
                for user_id in user_ids:
                    pipe.srem(self.keys.user_set(relation, category, user_id), item_id)
                    touched += 1
            for user_id in recipients:
                pipe.zrem(self.keys.recommended_set(category, user_id), item_id)
                touched += 1
            pipe.delete(*reverse_keys, recommended_to)
            pipe.zrem(self.keys.score_set(category), item_id)
            return touched

        touched = run_transaction(self.redis, _purge, *reverse_keys, recommended_to)
        record_purge("item")
        logger.info("Purged item", category=category, item_id=item_id, sets_touched=touched)
        return touched

    def purge_user(self, user_id) -> int:
        """
        Remove a user from every set that references it

        Deletes the user's own sets, takes the user out of every item's
        reverse index and every other user's similarity set, and rescores
        the items the user had rated. Runs as a single transaction.

        Returns:
            Number of items whose popularity was rescored
        """
        user_id = str(user_id)

        own_keys = [
            self.keys.user_set(relation, category, user_id)
            for category in self.categories
            for relation in Relation
        ]
        own_keys += [self.keys.recommended_set(category, user_id) for category in self.categories]
        own_keys += [
            self.keys.similarity_set(user_id),
            self.keys.neighbor_of_set(user_id),
            self.keys.temp_set(user_id),
        ]

        def _purge(pipe) -> int:
            held = {
                (relation, category): pipe.smembers(self.keys.user_set(relation, category, user_id))
                for category in self.categories
                for relation in Relation
            }
            recommended = {
                category: pipe.zrange(self.keys.recommended_set(category, user_id), 0, -1)
                for category in self.categories
            }
            neighbors = pipe.zrange(self.keys.similarity_set(user_id), 0, -1)
            neighbor_of = pipe.smembers(self.keys.neighbor_of_set(user_id))

            # Counts after this user's votes are gone
            rescored = []
            for category in self.categories:
                liked = held[(Relation.LIKED, category)]
                disliked = held[(Relation.DISLIKED, category)]
                for item_id in liked | disliked:
                    liked_by = self.keys.liked_by_set(category, item_id)
                    disliked_by = self.keys.disliked_by_set(category, item_id)
                    pipe.watch(liked_by, disliked_by)
                    likes = pipe.scard(liked_by) - (1 if item_id in liked else 0)
                    dislikes = pipe.scard(disliked_by) - (1 if item_id in disliked else 0)
                    rescored.append((category, item_id, likes, dislikes))

            pipe.multi()
            for (relation, category), item_ids in held.items():
                for item_id in item_ids:
                    pipe.srem(self.keys.item_set(relation, category, item_id), user_id)
            for category, item_ids in recommended.items():
                for item_id in item_ids:
                    pipe.srem(self.keys.recommended_to_set(category, item_id), user_id)
            for neighbor_id in neighbors:
                pipe.srem(self.keys.neighbor_of_set(neighbor_id), user_id)
            for other_user_id in neighbor_of:
                pipe.zrem(self.keys.similarity_set(other_user_id), user_id)
            pipe.delete(*own_keys)
            for category, item_id, likes, dislikes in rescored:
                self.popularity.queue_score(pipe, category, item_id, likes, dislikes)
            return len(rescored)

        rescored = run_transaction(self.redis, _purge, *own_keys)
        record_purge("user")
        logger.info("Purged user", user_id=user_id, items_rescored=rescored)
        return rescored
