"""Recommendation services"""

from .engine import RecommendationEngine
from .hooks import HookDispatcher
from .interactions import InteractionStore
from .keys import KeyMapper, Relation
from .popularity import PopularityScoreEngine, wilson_lower_bound
from .prediction import PredictionEngine
from .recommendations import RecommendationMaterializer
from .similarity import SimilarityEngine

__all__ = [
    "RecommendationEngine",
    "HookDispatcher",
    "InteractionStore",
    "KeyMapper",
    "Relation",
    "PopularityScoreEngine",
    "wilson_lower_bound",
    "PredictionEngine",
    "RecommendationMaterializer",
    "SimilarityEngine",
]
