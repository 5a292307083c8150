"""Recommendation schemas"""

from pydantic import BaseModel
from typing import List, Optional


class ScoredItem(BaseModel):
    """An item with its predicted or popularity score"""

    item_id: str
    score: float
    rank: int


class RecommendationResponse(BaseModel):
    """Stored recommendations for a user in one category"""

    user_id: str
    category: str
    recommendations: List[ScoredItem]
    total: int


class SimilarUser(BaseModel):
    """A neighbor and the similarity towards them"""

    user_id: str
    similarity: float
    rank: int


class SimilarUsersResponse(BaseModel):
    """Most similar users first"""

    user_id: str
    neighbors: List[SimilarUser]


class TopItemsResponse(BaseModel):
    """Global popularity ranking of a category"""

    category: str
    items: List[ScoredItem]


class ItemScoreResponse(BaseModel):
    """Popularity details of one item"""

    category: str
    item_id: str
    score: Optional[float]
    liked_by_count: int
    disliked_by_count: int
