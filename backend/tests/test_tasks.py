"""Tests for the per-user batch tasks"""

import fakeredis
import pytest

from recengine.config import Settings
from recengine.services.engine import RecommendationEngine
from recengine.tasks import celery_tasks


@pytest.fixture
def engine(monkeypatch):
    """Point the tasks at an engine over an in-memory Redis"""

    settings = Settings(CATEGORIES=["movies"], AUTO_ENQUEUE=False)
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    engine = RecommendationEngine(settings, client)
    monkeypatch.setattr(celery_tasks, "get_engine", lambda: engine)

    engine.interactions.like("1", "movies", 10)
    engine.interactions.like("2", "movies", 10)
    engine.interactions.like("2", "movies", 11)
    return engine


def test_update_similarities_for(engine):
    """Test the similarity task stores the user's neighbors"""

    result = celery_tasks.update_similarities_for("1")

    assert result["status"] == "success"
    assert result["neighbors"] == 1
    assert engine.similarity.stored_similarity("1", "2") == 1.0


def test_update_recommendations_for(engine):
    """Test the recommendation task uses the stored neighbors"""

    celery_tasks.update_similarities_for("1")
    result = celery_tasks.update_recommendations_for("1")

    assert result["recommendations"] == {"movies": 1}
    assert engine.recommendations.recommended_for("1", "movies") == ["11"]


def test_refresh_user(engine):
    """Test the refresh task runs both jobs"""

    result = celery_tasks.refresh_user("1")

    assert result["status"] == "success"
    assert result["recommendations"] == {"movies": 1}


def test_task_failure_propagates(engine, monkeypatch):
    """Test errors are raised so the worker can retry"""

    def fail(user_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(engine.similarity, "recompute_neighbors", fail)

    with pytest.raises(RuntimeError):
        celery_tasks.update_similarities_for("1")


def test_enqueue_refresh(monkeypatch):
    """Test enqueueing schedules the refresh task"""

    scheduled = []
    monkeypatch.setattr(celery_tasks.refresh_user, "delay", scheduled.append)

    celery_tasks.enqueue_refresh(7)

    assert scheduled == ["7"]
