"""User interaction API endpoints"""

from fastapi import APIRouter, Depends

from ..schemas.interaction import (
    RelationPath,
    InteractionResponse,
    ItemIdsResponse,
    InCommonResponse,
    PurgeResponse,
)
from ..services.engine import RecommendationEngine
from ..utils.dependencies import get_engine

router = APIRouter()


@router.put("/{user_id}/{relation}/{category}/{item_id}", response_model=InteractionResponse)
def add_interaction(
    user_id: str,
    relation: RelationPath,
    category: str,
    item_id: str,
    engine: RecommendationEngine = Depends(get_engine)
):
    """Like, dislike, hide or bookmark an item"""

    action = relation.action
    changed = getattr(engine.interactions, action)(user_id, category, item_id)

    return InteractionResponse(
        user_id=user_id, category=category, item_id=item_id, action=action, changed=changed
    )


@router.delete("/{user_id}/{relation}/{category}/{item_id}", response_model=InteractionResponse)
def remove_interaction(
    user_id: str,
    relation: RelationPath,
    category: str,
    item_id: str,
    engine: RecommendationEngine = Depends(get_engine)
):
    """Undo a like, dislike, hide or bookmark"""

    action = relation.undo_action
    changed = getattr(engine.interactions, action)(user_id, category, item_id)

    return InteractionResponse(
        user_id=user_id, category=category, item_id=item_id, action=action, changed=changed
    )


@router.get("/{user_id}/in-common/{other_user_id}/{relation}/{category}", response_model=InCommonResponse)
def get_in_common(
    user_id: str,
    other_user_id: str,
    relation: RelationPath,
    category: str,
    engine: RecommendationEngine = Depends(get_engine)
):
    """Get the items two users both hold in a relation"""

    engine.interactions.check_category(category)
    item_ids = engine.interactions.in_common_with(relation.relation, user_id, other_user_id, category)

    return InCommonResponse(
        user_id=user_id,
        other_user_id=other_user_id,
        category=category,
        relation=relation.value,
        item_ids=sorted(item_ids)
    )


@router.get("/{user_id}/{relation}/{category}", response_model=ItemIdsResponse)
def get_interactions(
    user_id: str,
    relation: RelationPath,
    category: str,
    engine: RecommendationEngine = Depends(get_engine)
):
    """Get the items a user holds in a relation"""

    engine.interactions.check_category(category)
    item_ids = engine.interactions.ids(relation.relation, user_id, category)

    return ItemIdsResponse(
        user_id=user_id,
        category=category,
        relation=relation.value,
        item_ids=sorted(item_ids),
        count=len(item_ids)
    )


@router.delete("/{user_id}", response_model=PurgeResponse)
def purge_user(user_id: str, engine: RecommendationEngine = Depends(get_engine)):
    """Remove every trace of a user; call before deleting the user record"""

    affected = engine.purge_user(user_id)
    return PurgeResponse(entity="user", id=user_id, affected=affected)
