from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from src.catalog.loader import load_catalog
from src.cluster.helm import HelmClient
from src.cluster.kubectl import KubectlClient
from src.common.errors import RecommenderError

from .resolver import ResourceResolver
from .runner import RecommendationRunner

app = typer.Typer(help="Evaluate OPA policies against live Kubernetes objects.")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


@app.command()
def recommend(
    policy: str = typer.Argument(..., help="Name of a registered policy."),
    config: Path = typer.Option(
        Path("configs/policies.yaml"),
        "--config",
        "-c",
        help="Policy catalog YAML file.",
    ),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Where to write recommendations JSON (stdout when omitted).",
    ),
    jobs: int = typer.Option(1, "--jobs", "-j", min=1, help="Number of parallel evaluation workers."),
    kubectl_cmd: str = typer.Option("kubectl", help="Command used to invoke kubectl."),
    helm_cmd: str = typer.Option("helm", help="Command used to invoke helm."),
    context: Optional[str] = typer.Option(None, help="Kubeconfig context to use."),
    kubeconfig: Optional[str] = typer.Option(None, help="Path to a kubeconfig file."),
    timeout: float = typer.Option(30.0, help="Timeout in seconds for each cluster call."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    _configure_logging(verbose)
    try:
        catalog = load_catalog(config)
        resolver = ResourceResolver(
            cluster=KubectlClient(kubectl_cmd, context=context, kubeconfig=kubeconfig, timeout_seconds=timeout),
            releases=HelmClient(helm_cmd, kube_context=context, kubeconfig=kubeconfig, timeout_seconds=timeout),
        )
        runner = RecommendationRunner(catalog, resolver, jobs=jobs)
        recommendations = runner.get_recommendations_by_name(policy)
    except RecommenderError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    rendered = json.dumps([item.to_dict() for item in recommendations], indent=2)
    failing = sum(1 for item in recommendations if not item.allow)
    summary = f"Generated {len(recommendations)} recommendation(s), {failing} failing."
    if out is None:
        # The summary goes to stderr so stdout stays valid JSON.
        typer.echo(rendered)
        typer.echo(summary, err=True)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(rendered, encoding="utf-8")
    typer.echo(f"{summary} Report written to {out.resolve()}")


@app.command()
def policies(
    config: Path = typer.Option(
        Path("configs/policies.yaml"),
        "--config",
        "-c",
        help="Policy catalog YAML file.",
    ),
) -> None:
    try:
        catalog = load_catalog(config)
    except RecommenderError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    for name in catalog.names():
        collection = catalog.lookup(name)
        typer.echo(f"{name}\t{collection.kind.value}\t{len(collection.queries)} query(ies)")


if __name__ == "__main__":  # pragma: no cover
    app()
