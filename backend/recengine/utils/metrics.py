"""Prometheus metrics configuration"""

from prometheus_client import Counter, Histogram, Info
from prometheus_fastapi_instrumentator import Instrumentator
from typing import Callable
import time
from functools import wraps

from .. import __version__

# Application info
app_info = Info('recengine', 'Recommendation Engine Information')
app_info.info({
    'version': __version__,
    'service': 'recengine'
})

# Interaction metrics
interactions_total = Counter(
    'recengine_interactions_total',
    'Interactions that changed the store',
    ['action']
)

purges_total = Counter(
    'recengine_purges_total',
    'Cascade deletions',
    ['entity']
)

# Batch job metrics
batch_job_duration_seconds = Histogram(
    'recengine_batch_job_duration_seconds',
    'Time taken by similarity and recommendation batch jobs',
    ['job']
)

batch_job_failures_total = Counter(
    'recengine_batch_job_failures_total',
    'Batch jobs that raised',
    ['job']
)


def setup_metrics(app):
    """
    Setup Prometheus metrics for FastAPI app

    Args:
        app: FastAPI application instance
    """
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True
    )

    instrumentator.instrument(app).expose(app, endpoint="/metrics")

    return instrumentator


def track_job_time(job: str):
    """
    Decorator to track batch job duration and failures

    Usage:
        @track_job_time("similarities")
        def update_similarities_for(user_id):
            pass
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            except Exception:
                batch_job_failures_total.labels(job=job).inc()
                raise
            finally:
                duration = time.time() - start_time
                batch_job_duration_seconds.labels(job=job).observe(duration)

        return wrapper

    return decorator


def record_interaction(action: str):
    """Record an interaction that changed the store"""
    interactions_total.labels(action=action).inc()


def record_purge(entity: str):
    """Record a cascade deletion"""
    purges_total.labels(entity=entity).inc()
