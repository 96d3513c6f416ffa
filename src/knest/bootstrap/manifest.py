# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/manifest.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from knest.config.models import ClusterIdentity, ProvisioningParameters
from knest.kube.clusterctl import ClusterctlClient
from knest.versions import VIRTINK_PROVIDER_VERSION

log = logging.getLogger("knest")

EPHEMERAL_FLAVOR = "internal"
PERSISTENT_FLAVOR = "cdi-internal"


@dataclass(frozen=True)
class MachineImageDefaults:
    kernel_image: str = ""
    rootfs_image: str = ""
    rootfs_cdi_image: str = ""


# Defaults applied when the caller leaves an image empty.
IMAGE_DEFAULTS = {
    False: MachineImageDefaults(
        kernel_image="smartxworks/capch-kernel-5.15.12",
        rootfs_image="smartxworks/capch-rootfs-1.24.0",
    ),
    True: MachineImageDefaults(
        rootfs_cdi_image="smartxworks/capch-rootfs-cdi-1.24.0",
    ),
}

ROLES = ("control_plane", "worker")


def build_template_env(
    identity: ClusterIdentity,
    params: ProvisioningParameters,
) -> dict[str, str]:
    """
    Substitution variables for `clusterctl generate cluster`.

    Both machine modes share one builder; the persistent mode adds the CDI
    rootfs image and the IPPool name.
    """
    defaults = IMAGE_DEFAULTS[params.persistent]
    env = {
        "POD_NETWORK_CIDR": params.pod_network_cidr,
        "SERVICE_CIDR": params.service_cidr,
        "VIRTINK_CONTROL_PLANE_SERVICE_TYPE": "NodePort",
    }

    for role in ROLES:
        prefix = f"VIRTINK_{role.upper()}_MACHINE"
        kernel = getattr(params, f"{role}_machine_kernel_image")
        rootfs = getattr(params, f"{role}_machine_rootfs_image")

        env[f"{prefix}_CPU_CORES"] = str(getattr(params, f"{role}_machine_cpu_cores"))
        env[f"{prefix}_MEMORY_SIZE"] = getattr(params, f"{role}_machine_memory_size")
        env[f"{prefix}_ROOTFS_SIZE"] = getattr(params, f"{role}_machine_rootfs_size")

        if params.persistent:
            env[f"{prefix}_KERNEL_IMAGE"] = kernel
            env[f"{prefix}_ROOTFS_IMAGE"] = rootfs
            env[f"{prefix}_ROOTFS_CDI_IMAGE"] = rootfs or defaults.rootfs_cdi_image
        else:
            env[f"{prefix}_KERNEL_IMAGE"] = kernel or defaults.kernel_image
            env[f"{prefix}_ROOTFS_IMAGE"] = rootfs or defaults.rootfs_image

    if params.persistent:
        env["VIRTINK_IP_POOL_NAME"] = identity.name

    return env


def select_flavor(params: ProvisioningParameters) -> Optional[str]:
    """The provider flavor to render, or None when a `from` URL replaces it."""
    if params.from_url:
        return None
    return PERSISTENT_FLAVOR if params.persistent else EPHEMERAL_FLAVOR


class ManifestGenerator:
    def __init__(self, clusterctl: ClusterctlClient, base_env: Optional[Mapping[str, str]] = None):
        self.clusterctl = clusterctl
        self.base_env = base_env

    def generate(self, identity: ClusterIdentity, params: ProvisioningParameters) -> str:
        env = dict(os.environ if self.base_env is None else self.base_env)
        env.update(build_template_env(identity, params))

        flavor = select_flavor(params)
        if flavor is None:
            log.info(f"Generating cluster manifest from {params.from_url}")
        else:
            log.info(f"Generating cluster manifest (flavor {flavor})")

        return self.clusterctl.generate_cluster(
            identity.name,
            target_namespace=identity.namespace,
            kubernetes_version=params.kubernetes_version,
            control_plane_machine_count=params.control_plane_machine_count,
            worker_machine_count=params.worker_machine_count,
            infrastructure=None if flavor is None else f"virtink:{VIRTINK_PROVIDER_VERSION}",
            flavor=flavor,
            from_url=params.from_url,
            env=env,
        )
