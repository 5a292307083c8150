"""Interaction schemas"""

from enum import Enum
from pydantic import BaseModel
from typing import Dict, List

from ..services.keys import Relation


class RelationPath(str, Enum):
    """Relation segment used in interaction URLs"""

    LIKES = "likes"
    DISLIKES = "dislikes"
    HIDDEN = "hidden"
    BOOKMARKS = "bookmarks"

    @property
    def relation(self) -> Relation:
        return _RELATIONS[self]

    @property
    def action(self) -> str:
        return _ACTIONS[self]

    @property
    def undo_action(self) -> str:
        return f"un{self.action}"


_RELATIONS = {
    RelationPath.LIKES: Relation.LIKED,
    RelationPath.DISLIKES: Relation.DISLIKED,
    RelationPath.HIDDEN: Relation.HIDDEN,
    RelationPath.BOOKMARKS: Relation.BOOKMARKED,
}

_ACTIONS = {
    RelationPath.LIKES: "like",
    RelationPath.DISLIKES: "dislike",
    RelationPath.HIDDEN: "hide",
    RelationPath.BOOKMARKS: "bookmark",
}


class InteractionResponse(BaseModel):
    """Outcome of an interaction request"""

    user_id: str
    category: str
    item_id: str
    action: str
    changed: bool


class ItemIdsResponse(BaseModel):
    """Item ids a user holds in one relation"""

    user_id: str
    category: str
    relation: str
    item_ids: List[str]
    count: int


class InCommonResponse(BaseModel):
    """Item ids two users share in one relation"""

    user_id: str
    other_user_id: str
    category: str
    relation: str
    item_ids: List[str]


class PurgeResponse(BaseModel):
    """Outcome of a cascade deletion"""

    entity: str
    id: str
    affected: int


class RefreshResponse(BaseModel):
    """Outcome of scheduling or running a user's batch jobs"""

    user_id: str
    queued: bool
    recommendations: Dict[str, int] = {}
