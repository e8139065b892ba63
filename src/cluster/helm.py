from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from src.common.errors import ResolutionError

from .command import load_json_object, run_command


@dataclass(frozen=True)
class ReleaseSnapshot:
    name: str
    namespace: str
    status: str = ""
    chart_name: str = ""
    chart_version: str = ""
    config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_release(cls, data: Dict[str, Any]) -> "ReleaseSnapshot":
        """Build a snapshot from the release object printed by ``helm status -o json``."""

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ResolutionError("helm release is missing a name")
        info = data.get("info") if isinstance(data.get("info"), dict) else {}
        chart = data.get("chart") if isinstance(data.get("chart"), dict) else {}
        metadata = chart.get("metadata") if isinstance(chart.get("metadata"), dict) else {}
        config = data.get("config") if isinstance(data.get("config"), dict) else {}
        return cls(
            name=name,
            namespace=str(data.get("namespace") or ""),
            status=str(info.get("status") or ""),
            chart_name=str(metadata.get("name") or ""),
            chart_version=str(metadata.get("version") or ""),
            config=config,
        )

    def to_document(self) -> Dict[str, Any]:
        return {"version": self.chart_version, "values": self.config}


class HelmClient:
    """Reads Helm releases with the helm CLI."""

    def __init__(
        self,
        helm_cmd: str = "helm",
        *,
        kube_context: Optional[str] = None,
        kubeconfig: Optional[str] = None,
        timeout_seconds: Optional[float] = 30.0,
    ) -> None:
        self.helm_cmd = helm_cmd
        self.kube_context = kube_context
        self.kubeconfig = kubeconfig
        self.timeout_seconds = timeout_seconds

    def get_release(self, name: str, namespace: str) -> ReleaseSnapshot:
        command = self._base_command() + ["status", name, "-o", "json"]
        if namespace:
            command.extend(["--namespace", namespace])
        stdout = self._run_command(command)
        return ReleaseSnapshot.from_release(load_json_object(stdout, f"helm release {name}"))

    def list_releases(self, namespace: str, status_filter: Iterable[str]) -> List[ReleaseSnapshot]:
        """List releases in ``namespace`` whose status is in ``status_filter``.

        ``helm list`` only reports the chart as ``name-version``, so each
        matching release is loaded again with ``helm status`` to get its
        chart metadata and values.
        """

        allowed = set(status_filter)
        command = self._base_command() + ["list", "--all", "--date", "-o", "json"]
        if namespace:
            command.extend(["--namespace", namespace])
        else:
            command.append("--all-namespaces")
        stdout = self._run_command(command)
        entries = self._load_list(stdout)

        releases: List[ReleaseSnapshot] = []
        for entry in entries:
            if entry.get("status") not in allowed:
                continue
            releases.append(self.get_release(str(entry.get("name")), str(entry.get("namespace") or namespace)))
        return releases

    def _base_command(self) -> List[str]:
        command = [self.helm_cmd]
        if self.kubeconfig:
            command.extend(["--kubeconfig", self.kubeconfig])
        if self.kube_context:
            command.extend(["--kube-context", self.kube_context])
        return command

    @staticmethod
    def _load_list(raw_output: str) -> List[Dict[str, Any]]:
        if not raw_output.strip():
            return []
        try:
            data = json.loads(raw_output)
        except json.JSONDecodeError as exc:
            raise ResolutionError(f"Could not parse helm list output: {exc}") from exc
        if not isinstance(data, list):
            raise ResolutionError("helm list output must be a JSON array")
        return [entry for entry in data if isinstance(entry, dict) and entry.get("name")]

    def _run_command(self, command: List[str]) -> str:
        return run_command(command, timeout=self.timeout_seconds)


__all__ = ["HelmClient", "ReleaseSnapshot"]
