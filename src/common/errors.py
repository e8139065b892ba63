"""Error taxonomy shared by the catalog, cluster accessors and recommender."""

from __future__ import annotations


class RecommenderError(Exception):
    """Base class for every failure surfaced by the recommendation engine."""


class ConfigurationError(RecommenderError):
    """Raised for unknown policies, bad match parameters or unsupported kinds."""


class PolicyNotFoundError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No policies for {name} found")
        self.name = name


class InvalidMatchError(ConfigurationError):
    pass


class UnsupportedKindError(ConfigurationError):
    def __init__(self, kind: object) -> None:
        super().__init__(f"Not a supported query kind: {kind}")
        self.kind = kind


class CatalogLoadError(ConfigurationError):
    pass


class ResolutionError(RecommenderError):
    """Raised when listing or fetching live objects fails."""


class EvaluationError(RecommenderError):
    """Raised when the query engine fails to evaluate a query."""


class DecodeError(EvaluationError):
    """Raised when a query result does not have the expected shape."""


__all__ = [
    "CatalogLoadError",
    "ConfigurationError",
    "DecodeError",
    "EvaluationError",
    "InvalidMatchError",
    "PolicyNotFoundError",
    "RecommenderError",
    "ResolutionError",
    "UnsupportedKindError",
]
