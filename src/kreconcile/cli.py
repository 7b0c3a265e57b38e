"""
kreconcilectl - kubectl-like front end for the reconcile toolkit.

Applies manifests with create-or-patch semantics, previews patches and
waits for objects to converge.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import click
import yaml
from tabulate import tabulate

from kreconcile.client import ResourceClient
from kreconcile.config import Config
from kreconcile.errors import NotFoundError, ReconcileError
from kreconcile.kinds.base import KindSpec
from kreconcile.kinds.registry import get_registry, register_builtin_kinds
from kreconcile.meta import ObjectKey
from kreconcile.patch import apply_merge_patch, create_patch
from kreconcile.retry import AttemptPolicy
from kreconcile.stores.base import Store

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class CLIState:
    """Shared state for all commands. The store is connected on first use."""

    def __init__(self, config: Config, store: Optional[Store] = None):
        self.config = config
        self._store = store

    @property
    def store(self) -> Store:
        if self._store is None:
            from kreconcile.stores.kubernetes import KubernetesStore

            self._store = KubernetesStore.from_config(self.config.kubernetes)
        return self._store

    def client(self, kind: KindSpec) -> ResourceClient:
        return ResourceClient(self.store, kind, self.config.retry)


def _load_documents(filename: str) -> List[Dict[str, Any]]:
    """Read all objects from a YAML or JSON file, flattening List kinds."""
    with open(filename, "r") as f:
        if filename.endswith(".yaml") or filename.endswith(".yml"):
            docs = [d for d in yaml.safe_load_all(f) if d]
        else:
            docs = [json.load(f)]

    objects = []
    for doc in docs:
        if isinstance(doc, dict) and doc.get("kind") == "List":
            objects.extend(doc.get("items") or [])
        else:
            objects.append(doc)
    logger.debug(f"Loaded {len(objects)} objects from {filename}")
    return objects


def _describe(doc: Any):
    if not isinstance(doc, dict):
        return "?", "?"
    return doc.get("kind", "?"), (doc.get("metadata") or {}).get("name", "?")


def _prepare(doc: Dict[str, Any], default_namespace: str):
    """
    Resolve the kind of a manifest and the overlay applied to it.

    Raises:
        ValueError: If the document is not an object or has no name.
        UnknownKindError: If the kind is not registered.
    """
    if not isinstance(doc, dict):
        raise ValueError(f"expected an object, got {type(doc).__name__}")
    if not (doc.get("metadata") or {}).get("name"):
        raise ValueError("metadata.name is required")
    kind = get_registry().for_object(doc)
    overlay = {k: v for k, v in doc.items() if k != "status"}
    meta = dict(overlay.get("metadata") or {})
    if kind.namespaced and not meta.get("namespace"):
        meta["namespace"] = default_namespace
    overlay["metadata"] = meta
    return kind, meta, overlay


def _overlay(kind: KindSpec, overlay: Dict[str, Any]):
    def transform(obj: Dict[str, Any]) -> Dict[str, Any]:
        return apply_merge_patch(obj, overlay, kind.merge_keys)

    return transform


def _wait_policy(state: CLIState, timeout: Optional[float]) -> AttemptPolicy:
    retry = state.config.retry
    return AttemptPolicy(
        interval=retry.retry_interval, timeout=timeout or retry.readiness_timeout
    )


@click.group()
@click.option("--kubeconfig", default=None, help="Path to the kubeconfig file")
@click.option("--context", "kube_context", default=None, help="Kubeconfig context")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (defaults to LOG_LEVEL or INFO)",
)
@click.pass_context
def cli(ctx, kubeconfig, kube_context, log_level):
    """kreconcilectl - converge cluster objects to their manifests"""
    if ctx.obj is None:
        ctx.obj = CLIState(Config.from_env())
    state: CLIState = ctx.obj

    if kubeconfig:
        state.config.kubernetes.kubeconfig = kubeconfig
    if kube_context:
        state.config.kubernetes.context = kube_context
    if log_level:
        state.config.log_level = log_level.upper()

    logging.basicConfig(level=state.config.log_level, format=LOG_FORMAT)
    register_builtin_kinds()


@cli.command()
@click.option(
    "--filename", "-f", required=True, type=click.Path(exists=True), help="Manifest"
)
@click.option("--namespace", "-n", default="default", help="Default namespace")
@click.pass_obj
def apply(state: CLIState, filename, namespace):
    """Create or patch every object in a YAML/JSON file"""
    rows = []
    failed = False

    for doc in _load_documents(filename):
        try:
            kind, meta, overlay = _prepare(doc, namespace)
            obj, verb = state.client(kind).create_or_patch(meta, _overlay(kind, overlay))
            rows.append([kind.kind, str(ObjectKey.from_object(obj)), verb.value])
        except (ReconcileError, ValueError) as e:
            failed = True
            kind_name, name = _describe(doc)
            click.echo(f"Error: {kind_name} {name}: {e}", err=True)
            rows.append([kind_name, name, "error"])

    click.echo(tabulate(rows, headers=["Kind", "Name", "Result"], tablefmt="grid"))
    if failed:
        raise SystemExit(1)


@cli.command()
@click.option(
    "--filename", "-f", required=True, type=click.Path(exists=True), help="Manifest"
)
@click.option("--namespace", "-n", default="default", help="Default namespace")
@click.option("--output", "-o", type=click.Choice(["json", "yaml"]), default="json")
@click.pass_obj
def diff(state: CLIState, filename, namespace, output):
    """Show the patch apply would submit, without writing"""
    for doc in _load_documents(filename):
        try:
            kind, meta, overlay = _prepare(doc, namespace)
            key = ObjectKey.from_meta(meta)
            current = state.store.get(kind, key)
        except NotFoundError:
            click.echo(f"# {kind.kind} {key}: would be created")
            continue
        except (ReconcileError, ValueError) as e:
            raise click.ClickException(str(e))

        desired = _overlay(kind, overlay)(current)
        delta = create_patch(current, desired, kind.patch_strategy, kind.merge_keys)
        if delta.is_empty():
            click.echo(f"# {kind.kind} {key}: unchanged")
            continue

        click.echo(f"# {kind.kind} {key}: {delta.content_type}")
        if output == "yaml":
            click.echo(yaml.safe_dump(delta.body, default_flow_style=False), nl=False)
        else:
            click.echo(delta.to_json(indent=2))


@cli.command()
@click.argument("kind_name")
@click.argument("name")
@click.argument("labels", nargs=-1, required=True)
@click.option("--namespace", "-n", default="default", help="Namespace")
@click.pass_obj
def label(state: CLIState, kind_name, name, labels, namespace):
    """Set labels (key=value) or remove them (key-) with a retried update"""
    changes = {}
    for item in labels:
        if "=" in item:
            k, v = item.split("=", 1)
            changes[k] = v
        elif item.endswith("-"):
            changes[item[:-1]] = None
        else:
            raise click.BadParameter(f"expected key=value or key-, got {item}")

    def set_labels(obj: Dict[str, Any]) -> Dict[str, Any]:
        current = obj["metadata"].setdefault("labels", {})
        for k, v in changes.items():
            if v is None:
                current.pop(k, None)
            else:
                current[k] = v
        return obj

    try:
        kind = get_registry().lookup(kind_name)
        state.client(kind).try_update(name, set_labels, namespace=namespace)
    except ReconcileError as e:
        raise click.ClickException(str(e))

    click.echo(f"{kind.kind.lower()}/{name} labeled")


@cli.command()
@click.argument("kind_name")
@click.argument("name")
@click.option("--namespace", "-n", default="default", help="Namespace")
@click.option(
    "--for", "condition", type=click.Choice(["ready", "deleted"]), default="ready"
)
@click.option("--timeout", type=float, default=None, help="Timeout in seconds")
@click.pass_obj
def wait(state: CLIState, kind_name, name, namespace, condition, timeout):
    """Wait until an object is ready or deleted"""
    try:
        kind = get_registry().lookup(kind_name)
        client = state.client(kind)
        policy = _wait_policy(state, timeout)
        if condition == "deleted":
            client.wait_until_deleted(name, namespace=namespace, policy=policy)
        else:
            client.wait_until_ready(name, namespace=namespace, policy=policy)
    except ReconcileError as e:
        raise click.ClickException(str(e))

    click.echo(f"{kind.kind.lower()}/{name} condition met: {condition}")


@cli.command("wait-deleted")
@click.argument("kind_name")
@click.option("--selector", "-l", required=True, help="Label selector")
@click.option("--namespace", "-n", default="default", help="Namespace")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds")
@click.pass_obj
def wait_deleted(state: CLIState, kind_name, selector, namespace, timeout):
    """Wait until no object matches a label selector"""
    try:
        kind = get_registry().lookup(kind_name)
        state.client(kind).wait_until_deleted_by_selector(
            selector, namespace=namespace, policy=_wait_policy(state, timeout)
        )
    except ReconcileError as e:
        raise click.ClickException(str(e))

    click.echo(f"No {kind.plural} match {selector}")


@cli.command()
def kinds():
    """List known kinds"""
    rows = [
        [
            spec.kind,
            spec.api_version,
            "Namespaced" if spec.namespaced else "Cluster",
            spec.patch_strategy.name.lower(),
        ]
        for spec in get_registry().list_kinds()
    ]
    click.echo(
        tabulate(rows, headers=["Kind", "API Version", "Scope", "Patch"], tablefmt="grid")
    )


if __name__ == "__main__":
    cli()
