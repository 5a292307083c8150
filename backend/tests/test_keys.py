"""Tests for the Redis key layout"""

import pytest

from recengine.config import Settings
from recengine.services.keys import KeyMapper, Relation


@pytest.fixture
def keys():
    return KeyMapper(namespace="recengine", user_collection="users")


def test_user_set_keys(keys):
    """Test per-user relation keys embed the relation and category"""

    assert keys.user_set(Relation.LIKED, "movies", 1) == "recengine:users:1:liked_movies"
    assert keys.user_set("disliked", "movies", 1) == "recengine:users:1:disliked_movies"
    assert keys.user_set(Relation.HIDDEN, "books", "abc") == "recengine:users:abc:hidden_books"
    assert keys.user_set(Relation.BOOKMARKED, "books", 2) == "recengine:users:2:bookmarked_books"


def test_item_set_keys(keys):
    """Test reverse index keys live under the category"""

    assert keys.liked_by_set("movies", 7) == "recengine:movies:7:liked_by"
    assert keys.disliked_by_set("movies", 7) == "recengine:movies:7:disliked_by"
    assert keys.item_set(Relation.HIDDEN, "movies", 7) == "recengine:movies:7:hidden_by"
    assert keys.recommended_to_set("movies", 7) == "recengine:movies:7:recommended_to"


def test_ranked_set_keys(keys):
    """Test sorted set keys"""

    assert keys.similarity_set(1) == "recengine:users:1:similarities"
    assert keys.recommended_set("movies", 1) == "recengine:users:1:recommended_movies"
    assert keys.score_set("movies") == "recengine:movies:scores"


def test_namespace_is_optional():
    """Test a missing namespace is left out of the key"""

    keys = KeyMapper(namespace=None)
    assert keys.similarity_set(1) == "users:1:similarities"
    assert keys.score_set("books") == "books:scores"


def test_keys_are_deterministic_and_distinct(keys):
    """Test identical inputs give identical keys and relations never collide"""

    assert keys.user_set("liked", "movies", 1) == keys.user_set(Relation.LIKED, "movies", "1")

    generated = {keys.user_set(relation, category, 1) for relation in Relation for category in ("movies", "books")}
    generated |= {keys.item_set(relation, "movies", 1) for relation in Relation}
    generated |= {keys.recommended_set("movies", 1), keys.similarity_set(1), keys.neighbor_of_set(1)}
    assert len(generated) == 8 + 4 + 3


def test_unknown_relation_rejected(keys):
    """Test an unknown relation name raises"""

    with pytest.raises(ValueError):
        keys.user_set("loved", "movies", 1)


def test_from_settings():
    """Test the mapper follows the configured layout"""

    settings = Settings(REDIS_NAMESPACE="shop", USER_COLLECTION="customers", CATEGORIES=["products"])
    keys = KeyMapper.from_settings(settings)

    assert keys.user_set(Relation.LIKED, "products", 3) == "shop:customers:3:liked_products"
