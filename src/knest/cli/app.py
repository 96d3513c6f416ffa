# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/cli/app.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from knest.bootstrap.credentials import CredentialStore
from knest.bootstrap.delete import CLUSTER_KIND, DeleteController
from knest.bootstrap.nested_cluster_manager import NestedClusterManager
from knest.bootstrap.provider_registry import FileProviderRegistry
from knest.bootstrap.scale import ScaleController
from knest.config.loader import load_settings, merge_parameters
from knest.config.models import ClusterIdentity, KnestSettings
from knest.errors import InvalidInputError, KnestError
from knest.kube.clusterctl import ClusterctlClient
from knest.kube.kubectl import KubectlClient
from knest.kube.waiter import KubectlWaiter
from knest.logging.log import default_log_dir, init_logging
from knest.observers.dispatcher import EventBus
from knest.observers.jsonfile import JsonFileObserver
from knest.observers.logger import LoggerObserver
from knest.versions import VIRTINK_PROVIDER_VERSION, VIRTINK_VERSION, __version__


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Manage nested Kubernetes clusters.", no_args_is_help=True)

log = logging.getLogger("knest")


@dataclass
class CliState:
    settings: KnestSettings
    namespace: str
    kubeconfig: Optional[str]
    context: Optional[str]
    run_id: str
    bus: EventBus

    def kubectl(self) -> KubectlClient:
        return KubectlClient(kubeconfig=self.kubeconfig, context=self.context)

    def clusterctl(self) -> ClusterctlClient:
        return ClusterctlClient(kubeconfig=self.kubeconfig, context=self.context)


def _namespace_option():
    return typer.Option(
        None, "--target-namespace", "-n", help="The namespace to use for the nested cluster."
    )


def _fail(exc: Exception) -> NoReturn:
    log.debug("command failed", exc_info=exc)
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    target_namespace: Optional[str] = typer.Option(
        None, "--target-namespace", "-n", help="Default namespace for the nested cluster commands."
    ),
    kubeconfig: Optional[str] = typer.Option(
        None, "--kubeconfig", help="Kubeconfig of the host cluster (defaults to kubectl's)."
    ),
    context: Optional[str] = typer.Option(
        None, "--context", help="Kube context of the host cluster."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="knest settings file (default: $KNEST_CONFIG or ~/.knest/config.yaml)."
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Show debug output on the console."),
):
    try:
        settings = load_settings(config)
    except KnestError as e:
        _fail(e)

    log_dir = Path(settings.log_dir).expanduser() if settings.log_dir else default_log_dir()
    logger, run_id, _ = init_logging(base_dir=log_dir, verbose=debug)

    bus = EventBus(
        observers=[
            LoggerObserver(logger),
            JsonFileObserver.for_run(log_dir, run_id),
        ]
    )

    ctx.obj = CliState(
        settings=settings,
        namespace=target_namespace or settings.namespace,
        kubeconfig=kubeconfig or settings.kubeconfig,
        context=context or settings.context,
        run_id=run_id,
        bus=bus,
    )


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def create(
    ctx: typer.Context,
    cluster: str = typer.Argument(..., help="Name of the nested cluster."),
    target_namespace: Optional[str] = _namespace_option(),
    kubernetes_version: Optional[str] = typer.Option(
        None, "--kubernetes-version", help="The Kubernetes version to use for the nested cluster."
    ),
    control_plane_machine_count: Optional[int] = typer.Option(
        None, "--control-plane-machine-count", help="The number of control plane machines for the nested cluster."
    ),
    worker_machine_count: Optional[int] = typer.Option(
        None, "--worker-machine-count", help="The number of worker machines for the nested cluster."
    ),
    pod_network_cidr: Optional[str] = typer.Option(
        None, "--pod-network-cidr", help="Specify range of IP addresses for the pod network."
    ),
    service_cidr: Optional[str] = typer.Option(
        None, "--service-cidr", help="Specify range of IP address for service VIPs."
    ),
    control_plane_machine_cpu_cores: Optional[int] = typer.Option(
        None, "--control-plane-machine-cpu-cores", help="The CPU cores of each control plane machine."
    ),
    control_plane_machine_memory_size: Optional[str] = typer.Option(
        None, "--control-plane-machine-memory-size", help="The memory size of each control plane machine."
    ),
    control_plane_machine_kernel_image: Optional[str] = typer.Option(
        None, "--control-plane-machine-kernel-image", help="The kernel image of control plane machine."
    ),
    control_plane_machine_rootfs_image: Optional[str] = typer.Option(
        None, "--control-plane-machine-rootfs-image", help="The rootfs image of control plane machine."
    ),
    control_plane_machine_rootfs_size: Optional[str] = typer.Option(
        None, "--control-plane-machine-rootfs-size", help="The rootfs size of each control plane machine."
    ),
    worker_machine_cpu_cores: Optional[int] = typer.Option(
        None, "--worker-machine-cpu-cores", help="The CPU cores of each worker machine."
    ),
    worker_machine_memory_size: Optional[str] = typer.Option(
        None, "--worker-machine-memory-size", help="The memory size of each worker machine."
    ),
    worker_machine_kernel_image: Optional[str] = typer.Option(
        None, "--worker-machine-kernel-image", help="The kernel image of worker machine."
    ),
    worker_machine_rootfs_image: Optional[str] = typer.Option(
        None, "--worker-machine-rootfs-image", help="The rootfs image of worker machine."
    ),
    worker_machine_rootfs_size: Optional[str] = typer.Option(
        None, "--worker-machine-rootfs-size", help="The rootfs size of each worker machine."
    ),
    persistent: Optional[bool] = typer.Option(
        None,
        "--persistent/--ephemeral",
        help="The machines of the nested cluster will be persistent, include persistent storage and IP address.",
    ),
    machine_addresses: Optional[List[str]] = typer.Option(
        None,
        "--machine-addresses",
        help="The candidate IP addresses (subnet or start-end, comma separated) for persistent machines.",
    ),
    host_cluster_cni: Optional[str] = typer.Option(
        None, "--host-cluster-cni", help="The CNI of the host cluster, support 'calico' and 'kube-ovn'."
    ),
    from_url: Optional[str] = typer.Option(
        None,
        "--from",
        help=f"The URL of the cluster template to use. If unspecified, the cluster template of "
        f"cluster-api-provider-virtink {VIRTINK_PROVIDER_VERSION} will be used.",
    ),
):
    """Create a nested Kubernetes cluster."""
    state: CliState = ctx.obj
    overrides = {
        "kubernetes_version": kubernetes_version,
        "control_plane_machine_count": control_plane_machine_count,
        "worker_machine_count": worker_machine_count,
        "pod_network_cidr": pod_network_cidr,
        "service_cidr": service_cidr,
        "control_plane_machine_cpu_cores": control_plane_machine_cpu_cores,
        "control_plane_machine_memory_size": control_plane_machine_memory_size,
        "control_plane_machine_kernel_image": control_plane_machine_kernel_image,
        "control_plane_machine_rootfs_image": control_plane_machine_rootfs_image,
        "control_plane_machine_rootfs_size": control_plane_machine_rootfs_size,
        "worker_machine_cpu_cores": worker_machine_cpu_cores,
        "worker_machine_memory_size": worker_machine_memory_size,
        "worker_machine_kernel_image": worker_machine_kernel_image,
        "worker_machine_rootfs_image": worker_machine_rootfs_image,
        "worker_machine_rootfs_size": worker_machine_rootfs_size,
        "persistent": persistent,
        "machine_addresses": machine_addresses or None,
        "host_cluster_cni": host_cluster_cni,
        "from_url": from_url,
    }

    try:
        params = merge_parameters(state.settings.create, overrides)
        kubectl = state.kubectl()
        manager = NestedClusterManager(
            kubectl,
            state.clusterctl(),
            waiter=KubectlWaiter(kubectl),
            registry=FileProviderRegistry(),
            credentials=CredentialStore(),
            bus=state.bus,
            run_id=state.run_id,
        )
        manager.create(ClusterIdentity(cluster, target_namespace or state.namespace), params)
    except KnestError as e:
        _fail(e)


@app.command()
def delete(
    ctx: typer.Context,
    cluster: str = typer.Argument(..., help="Name of the nested cluster."),
    target_namespace: Optional[str] = _namespace_option(),
):
    """Delete a nested cluster."""
    state: CliState = ctx.obj
    try:
        DeleteController(
            state.kubectl(), CredentialStore(), bus=state.bus, run_id=state.run_id
        ).delete(ClusterIdentity(cluster, target_namespace or state.namespace))
    except KnestError as e:
        _fail(e)


@app.command("list")
def list_clusters(
    ctx: typer.Context,
    target_namespace: Optional[str] = _namespace_option(),
):
    """List nested clusters."""
    state: CliState = ctx.obj
    try:
        state.kubectl().list_wide(CLUSTER_KIND, target_namespace or state.namespace)
    except KnestError as e:
        _fail(e)


@app.command()
def scale(
    ctx: typer.Context,
    cluster: str = typer.Argument(..., help="Name of the nested cluster."),
    target_namespace: Optional[str] = _namespace_option(),
    control_plane_machine_count: int = typer.Option(
        -1, "--control-plane-machine-count", help="The number of control plane machines for the nested cluster."
    ),
    worker_machine_count: int = typer.Option(
        -1, "--worker-machine-count", help="The number of worker machines for the nested cluster."
    ),
):
    """Scale a nested cluster."""
    state: CliState = ctx.obj
    try:
        ScaleController(state.kubectl(), bus=state.bus, run_id=state.run_id).scale(
            ClusterIdentity(cluster, target_namespace or state.namespace),
            control_plane=control_plane_machine_count if control_plane_machine_count > 0 else None,
            workers=worker_machine_count if worker_machine_count >= 0 else None,
        )
    except KnestError as e:
        _fail(e)


@app.command()
def version(
    output: str = typer.Option("", "--output", "-o", help="Output format; available options are 'json'"),
):
    """Print knest version."""
    v = {
        "knest": __version__,
        "virtink": VIRTINK_VERSION,
        "cluster-api-provider-virtink": VIRTINK_PROVIDER_VERSION,
    }

    if output == "":
        typer.echo(
            f"knest version: {json.dumps(v['knest'])}, "
            f"Virtink version: {json.dumps(v['virtink'])}, "
            f"cluster-api-provider-virtink version: {json.dumps(v['cluster-api-provider-virtink'])}"
        )
    elif output == "json":
        typer.echo(json.dumps(v, indent="\t"))
    else:
        _fail(InvalidInputError(f"unsupported output format: {output}"))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
