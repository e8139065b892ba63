from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .evaluator import RawQueryResult

FAILURE_SEPARATOR = ". "


@dataclass(frozen=True)
class Recommendation:
    allow: bool
    category_name: str
    object_id: str
    policy_version: str
    policy_severity: str
    policy_title: str
    policy_message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def helm_release_object_id(namespace: str, name: str, policy_id: str) -> str:
    return f"helm_release/{namespace}/{name}/{policy_id}"


def pod_object_id(namespace: str, name: str) -> str:
    return f"pod/{namespace}/{name}"


def custom_resource_object_id(group: str, version: str, resource: str, policy_id: str) -> str:
    return f"{group}/{version}/{resource}/{policy_id}"


def compose_message(raw: RawQueryResult) -> str:
    if raw.allow:
        return raw.success_message
    return FAILURE_SEPARATOR.join(raw.failure_message)


def normalize(raw: RawQueryResult, object_id: str, category_name: str) -> Recommendation:
    return Recommendation(
        allow=raw.allow,
        category_name=category_name,
        object_id=object_id,
        policy_version=raw.policy_version,
        policy_severity=raw.policy_severity,
        policy_title=raw.policy_title,
        policy_message=compose_message(raw),
    )


__all__ = [
    "FAILURE_SEPARATOR",
    "Recommendation",
    "compose_message",
    "custom_resource_object_id",
    "helm_release_object_id",
    "normalize",
    "pod_object_id",
]
