from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, List, Optional, Tuple

from src.catalog.catalog import PolicyCatalog

from .evaluator import evaluate
from .normalizer import Recommendation, normalize
from .resolver import CandidateObject, ResourceResolver

logger = logging.getLogger(__name__)


class RecommendationRunner:
    """Runs every query of a registered policy against the objects it targets."""

    def __init__(self, catalog: PolicyCatalog, resolver: ResourceResolver, jobs: int = 1) -> None:
        self.catalog = catalog
        self.resolver = resolver
        self.jobs = max(1, int(jobs))

    def set_resolver(self, resolver: ResourceResolver) -> None:
        self.resolver = resolver

    def get_recommendations_by_name(self, name: str) -> List[Recommendation]:
        collection = self.catalog.lookup(name)
        candidates = self.resolver.resolve(collection.kind, collection.match)

        # Object-major, query-minor; the output order follows this list.
        pairs: List[Tuple[CandidateObject, Any]] = [
            (candidate, query) for candidate in candidates for query in collection.queries
        ]

        if self.jobs <= 1 or len(pairs) <= 1:
            results = [self._evaluate_pair(name, candidate, query) for candidate, query in pairs]
        else:
            results = self._evaluate_parallel(name, pairs)

        recommendations = [result for result in results if result is not None]
        logger.info(
            "Policy %s produced %d recommendation(s) from %d evaluation(s)",
            name,
            len(recommendations),
            len(pairs),
        )
        return recommendations

    def _evaluate_parallel(
        self, name: str, pairs: List[Tuple[CandidateObject, Any]]
    ) -> List[Optional[Recommendation]]:
        jobs = min(self.jobs, len(pairs))
        results: List[Optional[Recommendation]] = []
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures: List[Future] = [
                executor.submit(self._evaluate_pair, name, candidate, query) for candidate, query in pairs
            ]
            try:
                for future in futures:
                    results.append(future.result())
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return results

    @staticmethod
    def _evaluate_pair(name: str, candidate: CandidateObject, query: Any) -> Optional[Recommendation]:
        raw = evaluate(query, candidate.document)
        if raw is None:
            return None
        return normalize(raw, candidate.object_id(raw.policy_id), name)


__all__ = ["RecommendationRunner"]
