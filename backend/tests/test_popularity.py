"""Tests for the Popularity Score Engine"""

import fakeredis
import pytest

from recengine.config import Settings
from recengine.services.engine import RecommendationEngine
from recengine.services.popularity import wilson_lower_bound


@pytest.fixture
def engine():
    settings = Settings(CATEGORIES=["books"], AUTO_ENQUEUE=False)
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    return RecommendationEngine(settings, client)


def test_wilson_known_value():
    """Test 8 likes and 2 dislikes"""

    score = wilson_lower_bound(8, 2)

    assert score == pytest.approx(0.4902, abs=1e-3)
    assert score < 0.8


def test_wilson_without_votes():
    """Test an item without votes scores 0.0"""

    assert wilson_lower_bound(0, 0) == 0.0


def test_wilson_increases_with_proportion():
    """Test the bound grows with the like proportion for a fixed sample size"""

    scores = [wilson_lower_bound(likes, 10 - likes) for likes in range(11)]

    assert scores == sorted(scores)
    assert len(set(scores)) == len(scores)


def test_wilson_increases_with_sample_size():
    """Test more votes at the same proportion raise the bound"""

    scores = [wilson_lower_bound(4 * n, n) for n in (1, 2, 5, 20, 100)]

    assert all(earlier < later for earlier, later in zip(scores, scores[1:]))
    assert scores[-1] < 0.8


def test_wilson_stays_in_unit_interval():
    """Test scores stay between 0 and 1"""

    for likes, dislikes in [(1, 0), (0, 1), (1000, 0), (0, 1000), (3, 7)]:
        assert -1e-9 <= wilson_lower_bound(likes, dislikes) <= 1.0


def test_top_returns_best_items(engine):
    """Test the ranking puts well liked items first"""

    engine.interactions.like("user", "books", 2)
    engine.interactions.like("friend", "books", 2)
    engine.interactions.like("user", "books", 3)
    engine.interactions.dislike("user", "books", 1)

    assert engine.popularity.top("books", 3) == ["2", "3", "1"]
    assert engine.popularity.top("books") == ["2"]
    assert engine.popularity.top("books", 0) == []


def test_update_popularity(engine):
    """Test scores reflect the current reverse sets"""

    engine.redis.sadd(engine.keys.liked_by_set("books", 5), "a", "b", "c", "d", "e", "f", "g", "h")
    engine.redis.sadd(engine.keys.disliked_by_set("books", 5), "i", "j")

    score = engine.popularity.update_popularity("books", 5)

    assert score == pytest.approx(wilson_lower_bound(8, 2))
    assert engine.popularity.top_with_scores("books", 1) == [("5", pytest.approx(score))]


def test_update_popularity_without_votes(engine):
    """Test an unrated item is not written"""

    assert engine.popularity.update_popularity("books", 6) == 0.0
    assert engine.popularity.score("books", 6) is None
