"""Pydantic schemas for request/response validation"""

from .interaction import (
    RelationPath,
    InteractionResponse,
    ItemIdsResponse,
    InCommonResponse,
    PurgeResponse,
    RefreshResponse,
)
from .recommendation import (
    ScoredItem,
    RecommendationResponse,
    SimilarUser,
    SimilarUsersResponse,
    TopItemsResponse,
    ItemScoreResponse,
)

__all__ = [
    "RelationPath",
    "InteractionResponse",
    "ItemIdsResponse",
    "InCommonResponse",
    "PurgeResponse",
    "RefreshResponse",
    "ScoredItem",
    "RecommendationResponse",
    "SimilarUser",
    "SimilarUsersResponse",
    "TopItemsResponse",
    "ItemScoreResponse",
]
