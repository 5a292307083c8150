"""Per-user batch jobs: similarity and recommendation recompute"""

from datetime import datetime
from functools import lru_cache

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .celery_config import celery_app
from ..config import settings
from ..exceptions import ConcurrentUpdateError
from ..services.engine import RecommendationEngine
from ..utils.logging import get_logger
from ..utils.metrics import track_job_time

logger = get_logger(__name__)

RETRYABLE = (RedisConnectionError, RedisTimeoutError, ConcurrentUpdateError)


@lru_cache(maxsize=1)
def get_engine() -> RecommendationEngine:
    """Engine used by the worker; batch jobs never enqueue further jobs"""
    return RecommendationEngine(settings)


@celery_app.task(
    name="recengine.tasks.celery_tasks.update_similarities_for",
    autoretry_for=RETRYABLE,
    retry_backoff=True,
    max_retries=5,
)
@track_job_time("similarities")
def update_similarities_for(user_id: str):
    """
    Recompute one user's similarity set

    Args:
        user_id: User ID
    """
    logger.info("Updating similarities", user_id=user_id)
    try:
        neighbors = get_engine().similarity.recompute_neighbors(user_id)
    except Exception:
        logger.error("Error updating similarities", user_id=user_id, exc_info=True)
        raise

    return {
        "status": "success",
        "timestamp": datetime.utcnow().isoformat(),
        "user_id": user_id,
        "neighbors": neighbors,
    }


@celery_app.task(
    name="recengine.tasks.celery_tasks.update_recommendations_for",
    autoretry_for=RETRYABLE,
    retry_backoff=True,
    max_retries=5,
)
@track_job_time("recommendations")
def update_recommendations_for(user_id: str):
    """
    Recompute one user's recommendations in every category

    Args:
        user_id: User ID
    """
    logger.info("Updating recommendations", user_id=user_id)
    try:
        stored = get_engine().recommendations.recompute_all(user_id)
    except Exception:
        logger.error("Error updating recommendations", user_id=user_id, exc_info=True)
        raise

    return {
        "status": "success",
        "timestamp": datetime.utcnow().isoformat(),
        "user_id": user_id,
        "recommendations": stored,
    }


@celery_app.task(
    name="recengine.tasks.celery_tasks.refresh_user",
    autoretry_for=RETRYABLE,
    retry_backoff=True,
    max_retries=5,
)
@track_job_time("refresh")
def refresh_user(user_id: str):
    """
    Recompute similarities, then recommendations, for one user

    This is what gets enqueued after every like or dislike.

    Args:
        user_id: User ID
    """
    logger.info("Refreshing user", user_id=user_id)
    try:
        stored = get_engine().refresh_user(user_id)
    except Exception:
        logger.error("Error refreshing user", user_id=user_id, exc_info=True)
        raise

    return {
        "status": "success",
        "timestamp": datetime.utcnow().isoformat(),
        "user_id": user_id,
        "recommendations": stored,
    }


def enqueue_refresh(user_id: str) -> None:
    """Schedule :func:`refresh_user` on the worker pool"""
    refresh_user.delay(str(user_id))
