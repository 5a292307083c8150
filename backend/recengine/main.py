"""
Recommendation Engine - Main FastAPI Application

Serves collaborative recommendations computed from like/dislike signals:
- Like / dislike / hide / bookmark tracking in Redis sets
- Asymmetric user-user similarity
- Per-user materialized recommendations, refreshed by Celery workers
- Wilson score popularity ranking per category
- Cascade deletion of users and items
"""

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from redis.exceptions import RedisError

from .config import settings
from .api import api_router
from .exceptions import ConcurrentUpdateError, NotRecommendableError
from .services.engine import RecommendationEngine
from .utils.dependencies import get_engine
from .utils.logging import setup_logging, get_logger, configure_uvicorn_logging
from .utils.metrics import setup_metrics

setup_logging(log_level=settings.LOG_LEVEL)
configure_uvicorn_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""

    logger.info("Starting Recommendation Engine", version=settings.VERSION, categories=settings.CATEGORIES)

    logger.info("Checking Redis connection")
    if get_engine().health_check():
        logger.info("Redis connection successful")
    else:
        logger.warning("Redis connection failed - interactions will be rejected")

    yield

    logger.info("Shutting down Recommendation Engine")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
    # Recommendation Engine API

    Personalized recommendations from binary like/dislike signals.

    ## Quick Start

    1. Register item categories with the `CATEGORIES` setting
    2. Record likes, dislikes, hides and bookmarks under `/users/{user_id}/...`
    3. Let the workers refresh neighbors and recommendations
    4. Read `/users/{user_id}/recommendations/{category}` or `/items/{category}/top`
    """,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "users", "description": "Interaction tracking and user removal"},
        {"name": "items", "description": "Popularity ranking and item removal"},
        {"name": "recommendations", "description": "Personalized recommendations and similar users"},
    ]
)

setup_metrics(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.exception_handler(NotRecommendableError)
async def not_recommendable_handler(request: Request, exc: NotRecommendableError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ConcurrentUpdateError)
async def concurrent_update_handler(request: Request, exc: ConcurrentUpdateError):
    logger.warning("Write conflict", url=str(request.url), attempts=exc.attempts)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(RedisError)
async def redis_error_handler(request: Request, exc: RedisError):
    logger.error("Store unavailable", url=str(request.url), error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Recommendation store unavailable"}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests"""
    logger.info(
        "Request received",
        method=request.method,
        url=str(request.url),
        client=request.client.host if request.client else None
    )

    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code
    )

    return response


@app.get("/", tags=["root"])
def root():
    """Root endpoint"""
    return {
        "message": "Recommendation Engine API",
        "version": settings.VERSION,
        "docs": "/docs",
        "status": "operational"
    }


@app.get("/health", tags=["root"], status_code=status.HTTP_200_OK)
def health_check(engine: RecommendationEngine = Depends(get_engine)):
    """Health check endpoint"""

    redis_healthy = engine.health_check()

    return {
        "status": "healthy" if redis_healthy else "degraded",
        "redis": "connected" if redis_healthy else "disconnected",
        "version": settings.VERSION
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "recengine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
