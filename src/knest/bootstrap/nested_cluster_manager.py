# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/nested_cluster_manager.py
from __future__ import annotations

import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from knest.config.models import ClusterIdentity, ProvisioningParameters
from knest.errors import CommandError, FileIOError, InstallError, KnestError
from knest.kube.clusterctl import ClusterctlClient
from knest.kube.kubectl import KubectlClient, KubectlError, ResourceRef
from knest.kube.probe import CapabilityMarker, ResourceProbe
from knest.kube.waiter import CancelToken, Waiter
from knest.observers.dispatcher import EventBus
from knest.observers.events import (
    new_ctx,
    ComponentInstalled,
    KubeconfigWritten,
    ManifestApplied,
    ProvisionStarted,
    ProvisionSummary,
    StepFailed,
    StepSkipped,
    StepStarted,
    StepSucceeded,
)
from .credentials import CredentialStore, build_server_url, decode_kubeconfig, load_host_endpoint
from .ippool import IPPOOL_KIND, AddressPoolRequest, parse_address_pool, render_address_pool
from .ladder import DEFAULT_LADDER, LadderEntry
from .manifest import ManifestGenerator
from .overlays import Overlay, OverlayComposer, select_overlay
from .provider_registry import VIRTINK_PROVIDER, ProviderEntry, ProviderRegistry
from .template_renderer import TemplateRenderer

log = logging.getLogger("knest")

CLUSTER_KIND = "clusters.cluster.x-k8s.io"
CONTROL_PLANE_INITIALIZED = "ControlPlaneInitialized"
MANIFEST_FILENAME = "cluster-template.yaml"


@dataclass(frozen=True)
class ClusterEndpoint:
    node_port: str
    cluster_ip: str
    kubeconfig: bytes


class NestedClusterManager:
    """
    Brings up a nested cluster on the HOST cluster.

    Every step is synchronous and aborts the run on failure, with the
    step name attached to the error. Nothing is rolled back: steps up to
    address-pool allocation are idempotent, so re-running `create` resumes.
    """

    def __init__(
        self,
        kubectl: KubectlClient,
        clusterctl: ClusterctlClient,
        *,
        waiter: Waiter,
        registry: ProviderRegistry,
        credentials: CredentialStore,
        renderer: Optional[TemplateRenderer] = None,
        ladder: Sequence[LadderEntry] = DEFAULT_LADDER,
        provider: ProviderEntry = VIRTINK_PROVIDER,
        host_endpoint: Optional[Callable[[], str]] = None,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
    ):
        self.kubectl = kubectl
        self.clusterctl = clusterctl
        self.waiter = waiter
        self.registry = registry
        self.credentials = credentials
        self.renderer = renderer or TemplateRenderer()
        self.ladder = tuple(ladder)
        self.provider = provider
        self.host_endpoint = host_endpoint or (
            lambda: load_host_endpoint(kubectl.kubeconfig, kubectl.context)
        )
        self.bus = bus or EventBus()
        self.run_id = run_id
        self.cancel = cancel

        self.probe = ResourceProbe(kubectl)
        self.generator = ManifestGenerator(clusterctl)
        self.composer = OverlayComposer(self.renderer)
        self._ctx: dict[str, Any] = new_ctx("", "", run_id=run_id)

    # -------------------------------------------------------------------------
    # Step plumbing
    # -------------------------------------------------------------------------

    def _step(self, name: str, fn: Callable[..., Any], *args: Any) -> Any:
        self.bus.emit(StepStarted(step=name, **self._ctx))
        start = time.time()
        try:
            result = fn(*args)
        except KnestError as e:
            if e.step is None:
                e.step = name
            self.bus.emit(StepFailed(step=name, error=str(e), **self._ctx))
            raise
        except OSError as e:
            self.bus.emit(StepFailed(step=name, error=str(e), **self._ctx))
            raise FileIOError(str(e), step=name) from e

        self.bus.emit(StepSucceeded(step=name, duration_s=round(time.time() - start, 2), **self._ctx))
        return result

    def _skip(self, name: str, reason: str) -> None:
        log.debug(f"[create] skip {name}: {reason}")
        self.bus.emit(StepSkipped(step=name, reason=reason, **self._ctx))

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create(self, identity: ClusterIdentity, params: ProvisioningParameters) -> Path:
        """Run the full create pipeline; returns the nested kubeconfig path."""
        self._ctx = new_ctx(identity.name, identity.namespace, run_id=self.run_id)
        self.bus.emit(ProvisionStarted(persistent=params.persistent, **self._ctx))

        try:
            pool, overlay = self._step("Validate", self.validate, identity, params)

            self._step("EnsureRegistryEntry", self.ensure_registry_entry)
            self._step("InstallLadder", self.install_ladder)
            self._step("EnsureNamespace", self.ensure_namespace, identity.namespace)

            if pool is not None:
                self._step("AllocateAddressPool", self.allocate_address_pool, pool)
            else:
                self._skip("AllocateAddressPool", "ephemeral machines")

            try:
                tmp = tempfile.TemporaryDirectory(prefix="knest")
            except OSError as e:
                self.bus.emit(StepFailed(step="GenerateManifest", error=str(e), **self._ctx))
                raise FileIOError(f"create work directory: {e}", step="GenerateManifest") from e

            with tmp as workdir:
                manifest_path = self._step(
                    "GenerateManifest", self.generate_manifest, identity, params, Path(workdir)
                )
                if overlay is not None:
                    self._step("ApplyOverlay", self.apply_overlay, manifest_path, overlay)
                else:
                    self._skip("ApplyOverlay", "no host CNI overlay requested")
                self._step("Apply", self.apply, manifest_path)

            self._step("WaitControlPlaneInitialized", self.wait_control_plane_initialized, identity)
            endpoint = self._step("ExtractEndpoint", self.extract_endpoint, identity)
            path = self._step(
                "PersistAndRewriteCredential", self.persist_credential, identity, endpoint
            )
        except Exception as e:
            self.bus.emit(ProvisionSummary(status="FAILED", error=str(e), **self._ctx))
            raise

        self.bus.emit(ProvisionSummary(status="OK", **self._ctx))
        return path

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def validate(
        self,
        identity: ClusterIdentity,
        params: ProvisioningParameters,
    ) -> tuple[Optional[AddressPoolRequest], Optional[Overlay]]:
        """Parse everything that can be wrong with the input. No side effects."""
        overlay = select_overlay(params.persistent, params.host_cluster_cni)
        if not params.persistent:
            return None, overlay

        pool = parse_address_pool(identity.name, identity.namespace, params.machine_addresses)
        if not pool.pools:
            log.warning("Persistent machines requested without --machine-addresses; the IPPool will be empty")
        return pool, overlay

    def ensure_registry_entry(self) -> bool:
        """Register the infrastructure provider with clusterctl; True when the registry changed."""
        if self.provider.name in self.clusterctl.repositories():
            log.debug(f"[registry] clusterctl already knows provider {self.provider.name}")
            return False

        self.registry.load()
        if self.registry.contains(self.provider.name):
            return False

        log.info(f"Registering {self.provider.name} provider with clusterctl")
        self.registry.append(self.provider)
        self.registry.persist()
        return True

    def install_ladder(self) -> list[str]:
        """Install every ladder component whose marker is absent; returns the installed names."""
        installed = []
        for entry in self.ladder:
            if self.probe.exists(entry.marker):
                log.debug(f"[ladder] {entry.name} already installed")
                continue

            log.info(f"Installing {entry.name}")
            for action in entry.install:
                try:
                    action.run(self.kubectl, self.clusterctl)
                except CommandError as e:
                    raise InstallError(f"install {entry.name} ({action.describe()}): {e}") from e

            for target in entry.readiness:
                log.info(f"Waiting for {entry.name} to be available...")
                self.waiter.wait_for(target.ref, target.condition, cancel=self.cancel)

            self.bus.emit(ComponentInstalled(component=entry.name, **self._ctx))
            installed.append(entry.name)
        return installed

    def ensure_namespace(self, namespace: str) -> bool:
        if self.probe.exists(CapabilityMarker(namespace, kind="namespace")):
            return False
        log.info(f"Creating namespace {namespace}")
        self.kubectl.create_namespace(namespace)
        return True

    def allocate_address_pool(self, pool: AddressPoolRequest) -> None:
        # Overwrite, never merge: a stale pool may hold other addresses.
        self.kubectl.delete(ResourceRef(IPPOOL_KIND, pool.name, pool.namespace))
        manifest = render_address_pool(pool, self.renderer)
        log.info(f"Creating IPPool {pool.name} with {len(pool.pools)} address range(s)")
        self.kubectl.apply_content(manifest)
        self.bus.emit(ManifestApplied(name=f"IPPool/{pool.name}", **self._ctx))

    def generate_manifest(
        self,
        identity: ClusterIdentity,
        params: ProvisioningParameters,
        workdir: Path,
    ) -> Path:
        text = self.generator.generate(identity, params)
        path = workdir / MANIFEST_FILENAME
        path.write_text(text, encoding="utf-8")
        return path

    def apply_overlay(self, manifest_path: Path, overlay: Overlay) -> None:
        log.info(f"Applying {overlay.cni.value} static IP and MAC overlay")
        base = manifest_path.read_text(encoding="utf-8")
        manifest_path.write_text(self.composer.compose(base, overlay), encoding="utf-8")

    def apply(self, manifest_path: Path) -> None:
        log.info(f"Creating cluster from {manifest_path}")
        self.kubectl.apply_file(manifest_path)
        self.bus.emit(ManifestApplied(name=manifest_path.name, **self._ctx))

    def wait_control_plane_initialized(self, identity: ClusterIdentity) -> None:
        log.info("Waiting for control plane to be initialized...")
        self.waiter.wait_for(
            ResourceRef(CLUSTER_KIND, identity.name, identity.namespace),
            CONTROL_PLANE_INITIALIZED,
            cancel=self.cancel,
        )

    def extract_endpoint(self, identity: ClusterIdentity) -> ClusterEndpoint:
        # TODO: LoadBalancer services; only NodePort exposure is handled.
        service = ResourceRef("service", identity.name, identity.namespace)
        node_port = self.kubectl.jsonpath(service, "{.spec.ports[0].nodePort}")
        if not node_port.isdigit():
            raise KubectlError(f"service {identity.name} has no node port (got {node_port!r})")
        cluster_ip = self.kubectl.jsonpath(service, "{.spec.clusterIP}")
        if not cluster_ip:
            raise KubectlError(f"service {identity.name} has no cluster IP")

        secret = ResourceRef("secret", identity.kubeconfig_secret_name, identity.namespace)
        encoded = self.kubectl.jsonpath(secret, "{.data.value}")
        return ClusterEndpoint(
            node_port=node_port,
            cluster_ip=cluster_ip,
            kubeconfig=decode_kubeconfig(encoded, identity.kubeconfig_secret_name),
        )

    def persist_credential(self, identity: ClusterIdentity, endpoint: ClusterEndpoint) -> Path:
        path = self.credentials.write(identity.namespace, identity.name, endpoint.kubeconfig)
        server = build_server_url(self.host_endpoint(), endpoint.node_port)
        self.credentials.rewrite(
            path,
            identity.name,
            server=server,
            tls_server_name=endpoint.cluster_ip,
        )
        self.bus.emit(KubeconfigWritten(path=str(path), server=server, **self._ctx))
        log.info(f"Your cluster {identity.name!r} is now accessible with the kubeconfig file {str(path)!r}")
        return path
