"""Build a ``PolicyCatalog`` from a YAML policy file.

The file lists each policy with the kind of object it targets, the match
parameters used to find those objects, and the OPA queries to run::

    opa:
      mode: cli
      command: opa
    policies:
      web-pods:
        kind: pod
        match: {namespace: default, labels: {app: web}}
        queries:
          - query: data.policies.pods.result
            paths: [policies/pods.rego]

Rego is never compiled here; queries are handed to OPA as written.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from src.common.errors import CatalogLoadError, ConfigurationError
from src.recommender.queries import OpaCliQuery, OpaServerQuery

from .catalog import Kind, MatchParameters, PolicyCatalog, QueryCollection

DEFAULT_OPA_URL = "http://localhost:8181"


@dataclass
class OpaOptions:
    mode: str = "cli"
    command: str = "opa"
    server_url: str = DEFAULT_OPA_URL
    timeout_seconds: float = 30.0

    @classmethod
    def from_config(cls, data: Optional[Dict[str, Any]]) -> "OpaOptions":
        data = data or {}
        if not isinstance(data, dict):
            raise CatalogLoadError("'opa' section must be a mapping")
        mode = str(data.get("mode", "cli")).lower()
        if mode not in {"cli", "server"}:
            raise CatalogLoadError(f"Unknown OPA mode: {mode}")
        return cls(
            mode=mode,
            command=os.getenv("RECOMMENDER_OPA_CMD") or str(data.get("command", "opa")),
            server_url=os.getenv("RECOMMENDER_OPA_URL") or str(data.get("server_url", DEFAULT_OPA_URL)),
            timeout_seconds=float(data.get("timeout_seconds", 30.0)),
        )


def load_catalog(path: Path, opa: Optional[OpaOptions] = None) -> PolicyCatalog:
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CatalogLoadError(f"Could not read policy file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise CatalogLoadError(f"Invalid YAML in {path}: {exc}") from exc
    return build_catalog(data, base_dir=path.parent.resolve(), opa=opa)


def build_catalog(
    data: Any, base_dir: Optional[Path] = None, opa: Optional[OpaOptions] = None
) -> PolicyCatalog:
    if not isinstance(data, dict):
        raise CatalogLoadError("Policy file must contain a mapping")
    options = opa or OpaOptions.from_config(data.get("opa"))
    policies = data.get("policies") or {}
    if not isinstance(policies, dict):
        raise CatalogLoadError("'policies' must be a mapping of name to policy")

    collections: Dict[str, QueryCollection] = {}
    for name, entry in policies.items():
        try:
            collections[str(name)] = _build_collection(entry, options, base_dir or Path.cwd())
        except ConfigurationError as exc:
            raise CatalogLoadError(f"Policy {name}: {exc}") from exc
    return PolicyCatalog(collections)


def _build_collection(entry: Any, options: OpaOptions, base_dir: Path) -> QueryCollection:
    if not isinstance(entry, dict):
        raise CatalogLoadError("policy entry must be a mapping")
    try:
        kind = Kind(entry.get("kind"))
    except ValueError:
        raise CatalogLoadError(f"unsupported kind {entry.get('kind')!r}") from None
    match = MatchParameters.from_dict(entry.get("match"))
    match.validate_for(kind)
    raw_queries = entry.get("queries") or []
    if not isinstance(raw_queries, list):
        raise CatalogLoadError("'queries' must be a list")
    queries = [_build_query(query, options, base_dir) for query in raw_queries]
    return QueryCollection(kind=kind, match=match, queries=tuple(queries))


def _build_query(entry: Any, options: OpaOptions, base_dir: Path) -> Any:
    if not isinstance(entry, dict):
        raise CatalogLoadError("query entry must be a mapping")
    timeout = float(entry.get("timeout_seconds", options.timeout_seconds))
    if options.mode == "server":
        data_path = entry.get("path")
        if not isinstance(data_path, str) or not data_path.strip():
            raise CatalogLoadError("server mode queries need a 'path'")
        return OpaServerQuery(base_url=options.server_url, path=data_path, timeout_seconds=timeout)

    query = entry.get("query")
    if not isinstance(query, str) or not query.strip():
        raise CatalogLoadError("cli mode queries need a 'query'")
    paths: List[str] = []
    for raw_path in entry.get("paths") or []:
        candidate = Path(str(raw_path)).expanduser()
        if not candidate.is_absolute():
            candidate = base_dir / candidate
        paths.append(str(candidate))
    return OpaCliQuery(query=query, paths=paths, opa_cmd=options.command, timeout_seconds=timeout)


__all__ = ["OpaOptions", "build_catalog", "load_catalog"]
