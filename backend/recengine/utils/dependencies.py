"""FastAPI dependencies"""

from functools import lru_cache

from ..config import settings
from ..services.engine import RecommendationEngine


@lru_cache(maxsize=1)
def get_engine() -> RecommendationEngine:
    """
    Engine shared by all requests

    Likes and dislikes schedule the user's batch jobs on the Celery
    worker pool.
    """
    from ..tasks.celery_tasks import enqueue_refresh

    return RecommendationEngine(settings, enqueue=enqueue_refresh)
