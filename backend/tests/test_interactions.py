"""Tests for the Interaction Store"""

import fakeredis
import pytest
from redis.client import Pipeline
from redis.exceptions import ConnectionError as RedisConnectionError

from recengine.config import Settings
from recengine.exceptions import ConcurrentUpdateError, NotRecommendableError
from recengine.services.engine import RecommendationEngine
from recengine.services.keys import Relation
from recengine.services.popularity import wilson_lower_bound
from recengine.utils.store import MAX_TRANSACTION_ATTEMPTS


@pytest.fixture
def settings():
    return Settings(CATEGORIES=["movies", "books"], AUTO_ENQUEUE=False, REDIS_NAMESPACE="test")


@pytest.fixture
def redis_client():
    """Create an isolated in-memory Redis"""

    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def engine(settings, redis_client):
    return RecommendationEngine(settings, redis_client)


@pytest.fixture
def store(engine):
    return engine.interactions


@pytest.fixture
def fail_next_exec(monkeypatch):
    """Make the next MULTI/EXEC fail as if the connection dropped"""

    execute = Pipeline.execute
    armed = []

    def failing_execute(pipe, *args, **kwargs):
        if armed and pipe.explicit_transaction:
            armed.clear()
            raise RedisConnectionError("Connection reset by peer")
        return execute(pipe, *args, **kwargs)

    monkeypatch.setattr(Pipeline, "execute", failing_execute)
    return lambda: armed.append(True)


def test_like_adds_to_both_sides(store):
    """Test liking records the item for the user and the user for the item"""

    assert not store.likes(1, "movies", 10)

    assert store.like(1, "movies", 10) is True

    assert store.likes(1, "movies", 10)
    assert store.ids(Relation.LIKED, 1, "movies") == {"10"}
    assert store.liked_by_ids("movies", 10) == {"1"}
    assert store.item_rated("movies", 10)


def test_cannot_like_twice(store):
    """Test a repeated like is a no-op"""

    assert store.like(1, "movies", 10) is True
    assert store.like(1, "movies", 10) is False
    assert store.liked_by_count("movies", 10) == 1


def test_unregistered_category_raises(store):
    """Test interactions on unknown categories are rejected"""

    with pytest.raises(NotRecommendableError) as excinfo:
        store.like(1, "rocks", 10)

    assert excinfo.value.category == "rocks"

    with pytest.raises(NotRecommendableError):
        store.bookmark(1, "rocks", 10)


def test_like_then_dislike_is_exclusive(store):
    """Test disliking a liked item moves it to the dislikes only"""

    store.like(1, "movies", 10)
    assert store.dislike(1, "movies", 10) is True

    assert not store.likes(1, "movies", 10)
    assert store.dislikes(1, "movies", 10)
    assert "1" not in store.liked_by_ids("movies", 10)
    assert store.disliked_by_ids("movies", 10) == {"1"}


def test_dislike_then_like_is_exclusive(store):
    """Test liking a disliked item moves it to the likes only"""

    store.dislike(1, "movies", 10)
    store.like(1, "movies", 10)

    assert store.likes(1, "movies", 10)
    assert not store.dislikes(1, "movies", 10)
    assert store.disliked_by_count("movies", 10) == 0


def test_rating_unhides(store):
    """Test liking or disliking a hidden item unhides it"""

    store.hide(1, "movies", 10)
    store.hide(1, "movies", 11)
    assert store.hides(1, "movies", 10)

    store.like(1, "movies", 10)
    store.dislike(1, "movies", 11)

    assert not store.hides(1, "movies", 10)
    assert not store.hides(1, "movies", 11)


def test_bookmark_is_independent(store):
    """Test bookmarks coexist with every other relation"""

    store.bookmark(1, "movies", 10)
    store.like(1, "movies", 10)
    store.dislike(1, "movies", 10)

    assert store.bookmarks(1, "movies", 10)
    assert store.dislikes(1, "movies", 10)

    assert store.unbookmark(1, "movies", 10) is True
    assert store.unbookmark(1, "movies", 10) is False


def test_undo_actions_are_noops_when_unset(store):
    """Test unlike/undislike/unhide return False when nothing is set"""

    assert store.unlike(1, "movies", 10) is False
    assert store.undislike(1, "movies", 10) is False
    assert store.unhide(1, "movies", 10) is False


def test_unlike_removes_from_both_sides(store):
    """Test unliking clears the user and item sets"""

    store.like(1, "movies", 10)
    assert store.unlike(1, "movies", 10) is True

    assert store.count(Relation.LIKED, 1, "movies") == 0
    assert store.liked_by_count("movies", 10) == 0
    assert not store.item_rated("movies", 10)


def test_unrate(store):
    """Test unrate clears the rating and the bookmark"""

    store.like(1, "movies", 10)
    store.bookmark(1, "movies", 10)

    assert store.unrate(1, "movies", 10) is True
    assert not store.rated(1, "movies", 10)
    assert not store.bookmarks(1, "movies", 10)
    assert store.unrate(1, "movies", 10) is False


def test_counts_are_per_category(store):
    """Test counts only include the requested category"""

    store.like(1, "movies", 10)
    store.like(1, "movies", 11)
    store.like(1, "books", 10)

    assert store.count(Relation.LIKED, 1, "movies") == 2
    assert store.count(Relation.LIKED, 1, "books") == 1
    assert store.total_count(Relation.LIKED, 1) == 3
    assert store.all_ids(Relation.LIKED, 1) == {"movies": {"10", "11"}, "books": {"10"}}


def test_in_common_with(store):
    """Test the intersection of two users' sets"""

    store.like(1, "movies", 10)
    store.like(1, "movies", 11)
    store.like(1, "books", 20)
    store.like(2, "movies", 10)
    store.like(2, "books", 20)
    store.like(2, "books", 21)

    assert store.in_common_with(Relation.LIKED, 1, 2, "movies") == {"10"}
    assert store.in_common_with(Relation.LIKED, 1, 2, "books") == {"20"}
    assert store.all_in_common_with(Relation.LIKED, 2, 1) == {"movies": {"10"}, "books": {"20"}}


def test_rated_anything(store):
    """Test rated_anything looks at likes and dislikes only"""

    assert not store.rated_anything(1)

    store.bookmark(1, "movies", 10)
    assert not store.rated_anything(1)

    store.dislike(1, "books", 20)
    assert store.rated_anything(1)


def test_rating_updates_popularity(engine, store):
    """Test likes and dislikes refresh the item's popularity score"""

    store.like(1, "movies", 10)
    store.like(2, "movies", 10)
    store.dislike(3, "movies", 10)

    assert engine.popularity.score("movies", 10) == pytest.approx(wilson_lower_bound(2, 1))

    store.undislike(3, "movies", 10)
    assert engine.popularity.score("movies", 10) == pytest.approx(wilson_lower_bound(2, 0))


def test_unrated_item_leaves_ranking(engine, store):
    """Test an item nobody rates anymore is dropped from the ranking"""

    store.like(1, "movies", 10)
    store.unlike(1, "movies", 10)

    assert engine.popularity.score("movies", 10) is None


def test_interaction_unrecommends(engine, store, redis_client):
    """Test rating, hiding or bookmarking removes the item from recommendations"""

    rec_key = engine.keys.recommended_set("movies", 1)
    redis_client.zadd(rec_key, {"10": 0.5, "11": 0.4, "12": 0.3, "13": 0.2})
    for item_id in ("10", "11", "12", "13"):
        redis_client.sadd(engine.keys.recommended_to_set("movies", item_id), "1")

    store.like(1, "movies", 10)
    store.dislike(1, "movies", 11)
    store.hide(1, "movies", 12)
    store.bookmark(1, "movies", 13)

    assert redis_client.zcard(rec_key) == 0
    assert redis_client.scard(engine.keys.recommended_to_set("movies", "10")) == 0


def test_before_hook_can_veto(engine, store):
    """Test a before hook returning False stops the interaction"""

    engine.hooks.register("before_like", lambda user_id, category, item_id: item_id != "10")

    assert store.like(1, "movies", 10) is False
    assert not store.likes(1, "movies", 10)

    assert store.like(1, "movies", 11) is True


def test_after_hook_runs(engine, store):
    """Test after hooks receive the interaction"""

    calls = []

    @engine.hooks.on("after_dislike")
    def record(user_id, category, item_id):
        calls.append((user_id, category, item_id))

    store.dislike(1, "movies", 10)
    store.dislike(1, "movies", 10)

    assert calls == [("1", "movies", "10")]


def test_unknown_hook_rejected(engine):
    """Test registering a hook under an unknown name raises"""

    with pytest.raises(ValueError):
        engine.hooks.register("before_rate", lambda *args: None)


def test_auto_enqueue(redis_client):
    """Test rating changes schedule the user's batch jobs"""

    queued = []
    settings = Settings(CATEGORIES=["movies"], AUTO_ENQUEUE=True)
    engine = RecommendationEngine(settings, redis_client, enqueue=queued.append)

    engine.interactions.like(1, "movies", 10)
    engine.interactions.hide(1, "movies", 11)
    engine.interactions.unlike(1, "movies", 10)

    assert queued == ["1", "1"]


def test_auto_enqueue_disabled(settings, redis_client):
    """Test nothing is scheduled when auto enqueue is off"""

    queued = []
    engine = RecommendationEngine(settings, redis_client, enqueue=queued.append)

    engine.interactions.like(1, "movies", 10)

    assert queued == []


def test_purge_item(engine, store, redis_client):
    """Test purging an item removes it from every set"""

    store.like(1, "movies", 10)
    store.dislike(2, "movies", 10)
    store.hide(3, "movies", 10)
    store.bookmark(4, "movies", 10)
    store.like(1, "movies", 11)
    redis_client.zadd(engine.keys.recommended_set("movies", 5), {"10": 0.9, "12": 0.1})
    redis_client.sadd(engine.keys.recommended_to_set("movies", "10"), "5")

    touched = engine.purge_item("movies", 10)

    assert touched == 5
    assert not store.likes(1, "movies", 10)
    assert not store.dislikes(2, "movies", 10)
    assert not store.hides(3, "movies", 10)
    assert not store.bookmarks(4, "movies", 10)
    assert redis_client.zrange(engine.keys.recommended_set("movies", 5), 0, -1) == ["12"]
    for relation in Relation:
        assert not redis_client.exists(engine.keys.item_set(relation, "movies", 10))
    assert not redis_client.exists(engine.keys.recommended_to_set("movies", 10))
    assert engine.popularity.score("movies", 10) is None

    # Other items are untouched
    assert store.likes(1, "movies", 11)
    assert engine.popularity.score("movies", 11) is not None


def test_purge_user(engine, store, redis_client):
    """Test purging a user removes it from every set and rescores its items"""

    store.like(1, "movies", 10)
    store.like(2, "movies", 10)
    store.dislike(1, "books", 20)
    store.hide(1, "movies", 11)
    store.bookmark(1, "books", 21)
    engine.similarity.recompute_neighbors(1)
    engine.similarity.recompute_neighbors(2)
    assert engine.similarity.stored_similarity(2, 1) == 1.0

    rescored = engine.purge_user(1)

    assert rescored == 2
    assert store.liked_by_ids("movies", 10) == {"2"}
    assert store.disliked_by_count("books", 20) == 0
    assert not redis_client.exists(engine.keys.item_set(Relation.HIDDEN, "movies", 11))
    assert not redis_client.exists(engine.keys.item_set(Relation.BOOKMARKED, "books", 21))
    assert not store.rated_anything(1)
    assert engine.similarity.stored_similarity(2, 1) is None
    assert not redis_client.exists(engine.keys.similarity_set(1))
    assert not redis_client.exists(engine.keys.neighbor_of_set(2))

    assert engine.popularity.score("movies", 10) == pytest.approx(wilson_lower_bound(1, 0))
    assert engine.popularity.score("books", 20) is None


def test_failed_like_commits_nothing(engine, store, fail_next_exec):
    """Test a store failure leaves no partial like behind and a retry completes it"""

    fail_next_exec()
    with pytest.raises(RedisConnectionError):
        store.like(1, "movies", 10)

    assert not store.likes(1, "movies", 10)
    assert store.liked_by_count("movies", 10) == 0
    assert engine.popularity.score("movies", 10) is None

    assert store.like(1, "movies", 10) is True
    assert store.liked_by_ids("movies", 10) == {"1"}
    assert engine.popularity.score("movies", 10) == pytest.approx(wilson_lower_bound(1, 0))


def test_failed_dislike_keeps_previous_like(engine, store, fail_next_exec):
    """Test a failed dislike leaves the earlier like and its score intact"""

    store.like(1, "movies", 10)
    score = engine.popularity.score("movies", 10)

    fail_next_exec()
    with pytest.raises(RedisConnectionError):
        store.dislike(1, "movies", 10)

    assert store.likes(1, "movies", 10)
    assert not store.dislikes(1, "movies", 10)
    assert store.liked_by_ids("movies", 10) == {"1"}
    assert store.disliked_by_count("movies", 10) == 0
    assert engine.popularity.score("movies", 10) == score


def test_failed_purge_item_commits_nothing(engine, store, redis_client, fail_next_exec):
    """Test a failed item purge leaves every reference in place"""

    store.like(1, "movies", 10)
    store.bookmark(2, "movies", 10)

    fail_next_exec()
    with pytest.raises(RedisConnectionError):
        engine.purge_item("movies", 10)

    assert store.likes(1, "movies", 10)
    assert store.bookmarks(2, "movies", 10)
    assert store.liked_by_ids("movies", 10) == {"1"}
    assert engine.popularity.score("movies", 10) is not None

    assert engine.purge_item("movies", 10) == 2
    assert not store.likes(1, "movies", 10)


def test_failed_purge_user_commits_nothing(engine, store, redis_client, fail_next_exec):
    """Test a failed user purge leaves the user and item scores in place"""

    store.like(1, "movies", 10)
    store.like(2, "movies", 10)
    score = engine.popularity.score("movies", 10)

    fail_next_exec()
    with pytest.raises(RedisConnectionError):
        engine.purge_user(1)

    assert store.likes(1, "movies", 10)
    assert store.liked_by_ids("movies", 10) == {"1", "2"}
    assert engine.popularity.score("movies", 10) == score

    assert engine.purge_user(1) == 1
    assert store.liked_by_ids("movies", 10) == {"2"}


def test_like_reruns_after_watch_conflict(engine, store, redis_client, monkeypatch):
    """Test a concurrent write to a watched key makes the like rerun cleanly"""

    write_action = store._write_action
    calls = []

    def conflicting_write(*args):
        if not calls:
            redis_client.sadd(engine.keys.user_set(Relation.LIKED, "movies", 1), "99")
        calls.append(args)
        return write_action(*args)

    monkeypatch.setattr(store, "_write_action", conflicting_write)

    assert store.like(1, "movies", 10) is True

    assert len(calls) == 2
    assert store.ids(Relation.LIKED, 1, "movies") == {"10", "99"}
    assert store.liked_by_ids("movies", 10) == {"1"}
    assert engine.popularity.score("movies", 10) == pytest.approx(wilson_lower_bound(1, 0))


def test_concurrent_rating_counts_both_votes(engine, store, monkeypatch):
    """Test a rating that lands mid-transaction is reflected in the stored score"""

    queue_score = engine.popularity.queue_score
    calls = []

    def racing_queue_score(*args):
        calls.append(args)
        if len(calls) == 1:
            store.dislike(2, "movies", 10)
        return queue_score(*args)

    monkeypatch.setattr(engine.popularity, "queue_score", racing_queue_score)

    assert store.like(1, "movies", 10) is True

    # First like attempt, the racing dislike, then the rerun
    assert len(calls) == 3
    assert store.liked_by_ids("movies", 10) == {"1"}
    assert store.disliked_by_ids("movies", 10) == {"2"}
    assert engine.popularity.score("movies", 10) == pytest.approx(wilson_lower_bound(1, 1))


def test_endless_conflicts_give_up(engine, store, redis_client, monkeypatch):
    """Test a transaction that keeps losing races stops and commits nothing"""

    write_action = store._write_action
    calls = []

    def conflicting_write(*args):
        calls.append(args)
        redis_client.sadd(engine.keys.user_set(Relation.LIKED, "movies", 1), f"other-{len(calls)}")
        return write_action(*args)

    monkeypatch.setattr(store, "_write_action", conflicting_write)

    with pytest.raises(ConcurrentUpdateError):
        store.like(1, "movies", 10)

    assert len(calls) == MAX_TRANSACTION_ATTEMPTS
    assert not store.likes(1, "movies", 10)
    assert engine.popularity.score("movies", 10) is None


def test_enqueue_failure_keeps_interaction(redis_client):
    """Test a scheduling failure does not undo a committed like"""

    def broken_enqueue(user_id):
        raise RedisConnectionError("broker unavailable")

    settings = Settings(CATEGORIES=["movies"], AUTO_ENQUEUE=True)
    engine = RecommendationEngine(settings, redis_client, enqueue=broken_enqueue)

    assert engine.interactions.like(1, "movies", 10) is True
    assert engine.interactions.likes(1, "movies", 10)
    assert engine.popularity.score("movies", 10) is not None
