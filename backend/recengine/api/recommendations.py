"""Recommendation API endpoints"""

from fastapi import APIRouter, Depends, Query

from ..schemas.interaction import RefreshResponse
from ..schemas.recommendation import (
    RecommendationResponse,
    ScoredItem,
    SimilarUser,
    SimilarUsersResponse,
)
from ..services.engine import RecommendationEngine
from ..utils.dependencies import get_engine

router = APIRouter()


@router.get("/{user_id}/recommendations/{category}", response_model=RecommendationResponse)
def get_recommendations(
    user_id: str,
    category: str,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    engine: RecommendationEngine = Depends(get_engine)
):
    """Get a user's stored recommendations for a category, best first"""

    engine.interactions.check_category(category)
    scored = engine.recommendations.recommended_with_scores(user_id, category, limit, offset)

    return RecommendationResponse(
        user_id=user_id,
        category=category,
        recommendations=[
            ScoredItem(item_id=item_id, score=score, rank=rank)
            for rank, (item_id, score) in enumerate(scored, offset + 1)
        ],
        total=engine.recommendations.recommended_count(user_id, category)
    )


@router.get("/{user_id}/similar", response_model=SimilarUsersResponse)
def get_similar_users(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    engine: RecommendationEngine = Depends(get_engine)
):
    """Get the users most similar to this one"""

    neighbors = engine.similarity.similar_raters(user_id, limit, offset)

    return SimilarUsersResponse(
        user_id=user_id,
        neighbors=[
            SimilarUser(user_id=other_id, similarity=similarity, rank=rank)
            for rank, (other_id, similarity) in enumerate(neighbors, offset + 1)
        ]
    )


@router.post("/{user_id}/refresh", response_model=RefreshResponse)
def refresh_user(
    user_id: str,
    sync: bool = Query(False, description="Recompute in the request instead of queueing"),
    engine: RecommendationEngine = Depends(get_engine)
):
    """Recompute a user's neighbors and recommendations"""

    enqueue = engine.interactions.enqueue
    if sync or enqueue is None:
        stored = engine.refresh_user(user_id)
        return RefreshResponse(user_id=user_id, queued=False, recommendations=stored)

    enqueue(user_id)
    return RefreshResponse(user_id=user_id, queued=True)
