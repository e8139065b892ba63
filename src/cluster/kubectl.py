from __future__ import annotations

from typing import Any, Dict, List, Optional

from .command import load_json_object, run_command


class KubectlClient:
    """Reads live objects from the cluster through ``kubectl get -o json``."""

    def __init__(
        self,
        kubectl_cmd: str = "kubectl",
        *,
        context: Optional[str] = None,
        kubeconfig: Optional[str] = None,
        timeout_seconds: Optional[float] = 30.0,
    ) -> None:
        self.kubectl_cmd = kubectl_cmd
        self.context = context
        self.kubeconfig = kubeconfig
        self.timeout_seconds = timeout_seconds

    def get_pods_by_label_selector(self, selector: str, namespace: str) -> List[Dict[str, Any]]:
        command = self._base_command() + ["get", "pods", "-o", "json"]
        command.extend(self._namespace_args(namespace))
        if selector:
            command.extend(["-l", selector])
        return self._list_items(command, "pod list")

    def list_custom_resources(
        self, group: str, version: str, resource: str, namespace: str
    ) -> List[Dict[str, Any]]:
        command = self._base_command() + ["get", self.qualified_resource(group, version, resource), "-o", "json"]
        command.extend(self._namespace_args(namespace))
        return self._list_items(command, f"{resource} list")

    @staticmethod
    def qualified_resource(group: str, version: str, resource: str) -> str:
        # Core group resources are addressed as resource.version.
        if group:
            return f"{resource}.{version}.{group}"
        return f"{resource}.{version}"

    def _base_command(self) -> List[str]:
        command = [self.kubectl_cmd]
        if self.kubeconfig:
            command.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            command.extend(["--context", self.context])
        return command

    @staticmethod
    def _namespace_args(namespace: str) -> List[str]:
        if namespace:
            return ["-n", namespace]
        return ["--all-namespaces"]

    def _list_items(self, command: List[str], what: str) -> List[Dict[str, Any]]:
        stdout = self._run_command(command)
        data = load_json_object(stdout, what)
        items = data.get("items") or []
        return [item for item in items if isinstance(item, dict)]

    def _run_command(self, command: List[str]) -> str:
        return run_command(command, timeout=self.timeout_seconds)


__all__ = ["KubectlClient"]
