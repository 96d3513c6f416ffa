# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/ladder.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from knest.kube.clusterctl import ClusterctlClient
from knest.kube.kubectl import KubectlClient, ResourceRef
from knest.kube.probe import CapabilityMarker
from knest.versions import (
    CDI_VERSION,
    IP_ADDRESS_MANAGER_VERSION,
    VIRTINK_PROVIDER_VERSION,
    VIRTINK_VERSION,
)


class InstallAction(Protocol):
    def run(self, kubectl: KubectlClient, clusterctl: ClusterctlClient) -> None: ...

    def describe(self) -> str: ...


@dataclass(frozen=True)
class ClusterctlInit:
    infrastructure: str

    def run(self, kubectl: KubectlClient, clusterctl: ClusterctlClient) -> None:
        clusterctl.init(self.infrastructure)

    def describe(self) -> str:
        return f"clusterctl init --infrastructure {self.infrastructure}"


@dataclass(frozen=True)
class ApplyManifestURL:
    url: str

    def run(self, kubectl: KubectlClient, clusterctl: ClusterctlClient) -> None:
        kubectl.apply_url(self.url)

    def describe(self) -> str:
        return f"kubectl apply -f {self.url}"


@dataclass(frozen=True)
class EnsureNamespace:
    name: str

    def run(self, kubectl: KubectlClient, clusterctl: ClusterctlClient) -> None:
        # A previous interrupted run may have created it already.
        if not kubectl.exists("namespace", self.name):
            kubectl.create_namespace(self.name)

    def describe(self) -> str:
        return f"ensure namespace {self.name}"


@dataclass(frozen=True)
class ReadinessTarget:
    ref: ResourceRef
    condition: str = "Available"


@dataclass(frozen=True)
class LadderEntry:
    name: str
    marker: CapabilityMarker
    install: tuple = field(default_factory=tuple)
    readiness: tuple[ReadinessTarget, ...] = field(default_factory=tuple)


def _release(repo: str, version: str, asset: str) -> str:
    return f"https://github.com/{repo}/releases/download/{version}/{asset}"


# Order matters: later components run on top of earlier ones.
DEFAULT_LADDER: tuple[LadderEntry, ...] = (
    LadderEntry(
        name="cluster-api",
        marker=CapabilityMarker("virtinkclusters.infrastructure.cluster.x-k8s.io"),
        install=(ClusterctlInit(f"virtink:{VIRTINK_PROVIDER_VERSION}"),),
    ),
    LadderEntry(
        name="virtink",
        marker=CapabilityMarker("virtualmachines.virt.virtink.smartx.com"),
        install=(ApplyManifestURL(_release("smartxworks/virtink", VIRTINK_VERSION, "virtink.yaml")),),
        readiness=(
            ReadinessTarget(ResourceRef("deployment", "virt-controller", "virtink-system")),
        ),
    ),
    LadderEntry(
        name="cdi",
        marker=CapabilityMarker("datavolumes.cdi.kubevirt.io"),
        install=(
            ApplyManifestURL(
                _release("kubevirt/containerized-data-importer", CDI_VERSION, "cdi-operator.yaml")
            ),
            ApplyManifestURL(
                _release("kubevirt/containerized-data-importer", CDI_VERSION, "cdi-cr.yaml")
            ),
        ),
        readiness=(ReadinessTarget(ResourceRef("cdi", "cdi")),),
    ),
    LadderEntry(
        name="ip-address-manager",
        marker=CapabilityMarker("ippools.ipam.metal3.io"),
        install=(
            EnsureNamespace("capm3-system"),
            ApplyManifestURL(
                _release(
                    "metal3-io/ip-address-manager",
                    IP_ADDRESS_MANAGER_VERSION,
                    "ipam-components.yaml",
                )
            ),
        ),
        readiness=(
            ReadinessTarget(ResourceRef("deployment", "ipam-controller-manager", "capm3-system")),
        ),
    ),
)
