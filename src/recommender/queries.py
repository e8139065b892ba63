from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import httpx

from src.common.errors import EvaluationError

ResultSet = Dict[str, Any]


class Query(Protocol):
    """A Rego query that has already been written and registered with OPA."""

    def eval(self, document: Dict[str, Any]) -> List[ResultSet]:
        ...


@dataclass
class OpaCliQuery:
    """Evaluates a query with ``opa eval``, passing the document on stdin."""

    query: str
    paths: Sequence[str] = field(default_factory=list)
    opa_cmd: str = "opa"
    timeout_seconds: Optional[float] = 30.0

    def eval(self, document: Dict[str, Any]) -> List[ResultSet]:
        command = [self.opa_cmd, "eval", "--format", "json", "--stdin-input"]
        for path in self.paths:
            command.extend(["--data", str(path)])
        command.append(self.query)
        stdout = self._run_command(command, json.dumps(document))
        try:
            payload = json.loads(stdout) if stdout.strip() else {}
        except json.JSONDecodeError as exc:
            raise EvaluationError(f"opa returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise EvaluationError("opa output must be a JSON object")
        results = payload.get("result") or []
        if not isinstance(results, list):
            raise EvaluationError("opa result must be a list")
        return results

    def _run_command(self, command: Sequence[str], stdin: str) -> str:
        try:
            completed = subprocess.run(
                command,
                input=stdin,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise EvaluationError(f"Required binary not found: {command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise EvaluationError(f"opa eval timed out after {exc.timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or (exc.stdout or "").strip()
            raise EvaluationError(f"opa eval failed ({self.query}): {detail}") from exc
        return completed.stdout


@dataclass
class OpaServerQuery:
    """Evaluates a policy document through the OPA REST data API."""

    base_url: str
    path: str
    timeout_seconds: float = 30.0
    transport: Optional[httpx.BaseTransport] = None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/data/{self.path.strip('/')}"

    def eval(self, document: Dict[str, Any]) -> List[ResultSet]:
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = client.post(self.endpoint, json={"input": document})
                response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise EvaluationError(f"OPA request to {self.endpoint} failed: {exc}") from exc
        if not isinstance(data, dict):
            raise EvaluationError("OPA response must be a JSON object")
        # An undefined document comes back without a result key.
        if "result" not in data:
            return []
        return [{"expressions": [{"value": data["result"], "text": self.path}]}]


@dataclass
class StaticQuery:
    """Wraps a callable that produces result sets for a document."""

    fn: Callable[[Dict[str, Any]], List[ResultSet]]
    name: str = "static"

    def eval(self, document: Dict[str, Any]) -> List[ResultSet]:
        return list(self.fn(document))


__all__ = ["OpaCliQuery", "OpaServerQuery", "Query", "ResultSet", "StaticQuery"]
