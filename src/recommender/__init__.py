"""Policy recommendations for live Kubernetes objects."""

from .evaluator import RawQueryResult, evaluate
from .normalizer import Recommendation, normalize
from .resolver import ResourceResolver
from .runner import RecommendationRunner

__all__ = [
    "RawQueryResult",
    "Recommendation",
    "RecommendationRunner",
    "ResourceResolver",
    "evaluate",
    "normalize",
]
