"""Item API endpoints"""

from fastapi import APIRouter, Depends, Query

from ..schemas.interaction import PurgeResponse
from ..schemas.recommendation import ItemScoreResponse, ScoredItem, TopItemsResponse
from ..services.engine import RecommendationEngine
from ..utils.dependencies import get_engine

router = APIRouter()


@router.get("/{category}/top", response_model=TopItemsResponse)
def get_top_items(
    category: str,
    count: int = Query(10, ge=1, le=100),
    engine: RecommendationEngine = Depends(get_engine)
):
    """Get the most popular items in a category"""

    engine.interactions.check_category(category)
    scored = engine.popularity.top_with_scores(category, count)

    return TopItemsResponse(
        category=category,
        items=[
            ScoredItem(item_id=item_id, score=score, rank=rank)
            for rank, (item_id, score) in enumerate(scored, 1)
        ]
    )


@router.get("/{category}/{item_id}/score", response_model=ItemScoreResponse)
def get_item_score(category: str, item_id: str, engine: RecommendationEngine = Depends(get_engine)):
    """Get the popularity score and vote counts of an item"""

    engine.interactions.check_category(category)

    return ItemScoreResponse(
        category=category,
        item_id=item_id,
        score=engine.popularity.score(category, item_id),
        liked_by_count=engine.interactions.liked_by_count(category, item_id),
        disliked_by_count=engine.interactions.disliked_by_count(category, item_id)
    )


@router.delete("/{category}/{item_id}", response_model=PurgeResponse)
def purge_item(category: str, item_id: str, engine: RecommendationEngine = Depends(get_engine)):
    """Remove every trace of an item; call before deleting the item record"""

    affected = engine.purge_item(category, item_id)
    return PurgeResponse(entity="item", id=item_id, affected=affected)
