from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from src.common.errors import InvalidMatchError, PolicyNotFoundError


class Kind(str, Enum):
    HELM_RELEASE = "helm_release"
    POD = "pod"
    CRD_LIST = "crd_list"


@dataclass(frozen=True)
class MatchParameters:
    namespace: str = ""
    name: str = ""
    chart_name: str = ""
    labels: Mapping[str, str] = field(default_factory=dict)
    # custom resources
    group: str = ""
    version: str = ""
    resource: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    def validate_for(self, kind: Kind) -> None:
        if kind is Kind.HELM_RELEASE:
            if bool(self.name) == bool(self.chart_name):
                raise InvalidMatchError(
                    "invalid match parameters: exactly one of name or chart_name must be set"
                )
        elif kind is Kind.CRD_LIST:
            missing = [key for key in ("version", "resource") if not getattr(self, key)]
            if missing:
                raise InvalidMatchError(
                    f"invalid match parameters: missing {', '.join(missing)}"
                )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MatchParameters":
        data = data or {}
        if not isinstance(data, dict):
            raise InvalidMatchError("match parameters must be a mapping")
        labels = data.get("labels") or {}
        if not isinstance(labels, dict):
            raise InvalidMatchError("match labels must be a mapping")
        # Label values are case-sensitive strings; quote YAML booleans and numbers.
        for key, value in labels.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise InvalidMatchError(
                    f"match label {key!r}: {value!r} must map a string key to a string value"
                )
        return cls(
            namespace=str(data.get("namespace") or ""),
            name=str(data.get("name") or ""),
            chart_name=str(data.get("chart_name") or ""),
            labels=dict(labels),
            group=str(data.get("group") or ""),
            version=str(data.get("version") or ""),
            resource=str(data.get("resource") or ""),
        )


@dataclass(frozen=True)
class QueryCollection:
    kind: Kind
    match: MatchParameters
    queries: Tuple[Any, ...] = ()


class PolicyCatalog:
    """Read-only mapping from policy name to the queries it runs.

    Built once (usually by ``load_catalog``) and shared between requests;
    there is no way to add or remove policies after construction.
    """

    def __init__(self, policies: Mapping[str, QueryCollection]) -> None:
        self._policies: Mapping[str, QueryCollection] = MappingProxyType(dict(policies))

    def get(self, name: str) -> Tuple[Optional[QueryCollection], bool]:
        collection = self._policies.get(name)
        return collection, collection is not None

    def lookup(self, name: str) -> QueryCollection:
        collection, found = self.get(name)
        if not found:
            raise PolicyNotFoundError(name)
        return collection

    def names(self) -> List[str]:
        return sorted(self._policies)

    def __contains__(self, name: object) -> bool:
        return name in self._policies

    def __len__(self) -> int:
        return len(self._policies)


__all__ = ["Kind", "MatchParameters", "PolicyCatalog", "QueryCollection"]
