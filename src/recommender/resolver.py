from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from src.catalog.catalog import Kind, MatchParameters
from src.cluster.helm import ReleaseSnapshot
from src.common.errors import RecommenderError, ResolutionError, UnsupportedKindError

from .normalizer import custom_resource_object_id, helm_release_object_id, pod_object_id

logger = logging.getLogger(__name__)

RELEASE_STATUS_FILTER: Tuple[str, ...] = (
    "deployed",
    "pending",
    "pending-install",
    "pending-upgrade",
    "pending-rollback",
    "failed",
)


class ClusterAccessor(Protocol):
    def get_pods_by_label_selector(self, selector: str, namespace: str) -> List[Dict[str, Any]]:
        ...

    def list_custom_resources(
        self, group: str, version: str, resource: str, namespace: str
    ) -> List[Dict[str, Any]]:
        ...


class ReleaseAccessor(Protocol):
    def get_release(self, name: str, namespace: str) -> ReleaseSnapshot:
        ...

    def list_releases(self, namespace: str, status_filter: Sequence[str]) -> List[ReleaseSnapshot]:
        ...


@dataclass(frozen=True)
class CandidateObject:
    kind: Kind
    namespace: str
    name: str
    document: Dict[str, Any] = field(default_factory=dict)
    gvr: Tuple[str, str, str] = ("", "", "")

    def object_id(self, policy_id: str) -> str:
        if self.kind is Kind.HELM_RELEASE:
            return helm_release_object_id(self.namespace, self.name, policy_id)
        if self.kind is Kind.POD:
            return pod_object_id(self.namespace, self.name)
        group, version, resource = self.gvr
        return custom_resource_object_id(group, version, resource, policy_id)


def build_label_selector(labels: Mapping[str, str]) -> str:
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))


def _metadata(document: Dict[str, Any]) -> Dict[str, Any]:
    metadata = document.get("metadata")
    return metadata if isinstance(metadata, dict) else {}


class ReleaseStrategy:
    def __init__(self, releases: ReleaseAccessor) -> None:
        self.releases = releases

    def resolve(self, match: MatchParameters) -> List[CandidateObject]:
        match.validate_for(Kind.HELM_RELEASE)
        if match.name:
            snapshots = [_call(self.releases.get_release, match.name, match.namespace)]
        else:
            listed = _call(self.releases.list_releases, match.namespace, RELEASE_STATUS_FILTER)
            snapshots = [
                release
                for release in listed
                if release.status in RELEASE_STATUS_FILTER and release.chart_name == match.chart_name
            ]
        return [
            CandidateObject(
                kind=Kind.HELM_RELEASE,
                namespace=release.namespace or match.namespace,
                name=release.name,
                document=release.to_document(),
            )
            for release in snapshots
        ]


class PodStrategy:
    def __init__(self, cluster: ClusterAccessor) -> None:
        self.cluster = cluster

    def resolve(self, match: MatchParameters) -> List[CandidateObject]:
        match.validate_for(Kind.POD)
        selector = build_label_selector(match.labels)
        pods = _call(self.cluster.get_pods_by_label_selector, selector, match.namespace)
        candidates: List[CandidateObject] = []
        for pod in pods:
            metadata = _metadata(pod)
            candidates.append(
                CandidateObject(
                    kind=Kind.POD,
                    namespace=str(metadata.get("namespace") or match.namespace),
                    name=str(metadata.get("name") or ""),
                    document=pod,
                )
            )
        return candidates


class CustomResourceStrategy:
    def __init__(self, cluster: ClusterAccessor) -> None:
        self.cluster = cluster

    def resolve(self, match: MatchParameters) -> List[CandidateObject]:
        match.validate_for(Kind.CRD_LIST)
        items = _call(
            self.cluster.list_custom_resources,
            match.group,
            match.version,
            match.resource,
            match.namespace,
        )
        gvr = (match.group, match.version, match.resource)
        candidates: List[CandidateObject] = []
        for item in items:
            metadata = _metadata(item)
            candidates.append(
                CandidateObject(
                    kind=Kind.CRD_LIST,
                    namespace=str(metadata.get("namespace") or match.namespace),
                    name=str(metadata.get("name") or ""),
                    document=item,
                    gvr=gvr,
                )
            )
        return candidates


def _call(fn: Any, *args: Any) -> Any:
    try:
        return fn(*args)
    except RecommenderError:
        raise
    except Exception as exc:
        raise ResolutionError(str(exc)) from exc


class ResourceResolver:
    """Resolves the live objects a policy targets, one strategy per kind."""

    def __init__(
        self,
        cluster: ClusterAccessor,
        releases: ReleaseAccessor,
        strategies: Optional[Mapping[Kind, Any]] = None,
    ) -> None:
        self.strategies: Dict[Kind, Any] = {
            Kind.HELM_RELEASE: ReleaseStrategy(releases),
            Kind.POD: PodStrategy(cluster),
            Kind.CRD_LIST: CustomResourceStrategy(cluster),
        }
        if strategies:
            self.strategies.update(strategies)

    def resolve(self, kind: Any, match: MatchParameters) -> List[CandidateObject]:
        try:
            strategy = self.strategies[Kind(kind)]
        except (KeyError, ValueError):
            raise UnsupportedKindError(kind) from None
        candidates = strategy.resolve(match)
        logger.info("Resolved %d %s object(s)", len(candidates), Kind(kind).value)
        return candidates


__all__ = [
    "CandidateObject",
    "ClusterAccessor",
    "CustomResourceStrategy",
    "PodStrategy",
    "RELEASE_STATUS_FILTER",
    "ReleaseAccessor",
    "ReleaseStrategy",
    "ResourceResolver",
    "build_label_selector",
]
