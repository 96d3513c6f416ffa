# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/config/models.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, List, Optional

from kubernetes.utils import parse_quantity
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

_BINARY_SUFFIXES = [
    ("Ei", 2**60),
    ("Pi", 2**50),
    ("Ti", 2**40),
    ("Gi", 2**30),
    ("Mi", 2**20),
    ("Ki", 2**10),
]
_DECIMAL_SUFFIXES = [
    ("E", 10**18),
    ("P", 10**15),
    ("T", 10**12),
    ("G", 10**9),
    ("M", 10**6),
    ("k", 10**3),
]


def canonical_quantity(value) -> str:
    """
    Normalise a Kubernetes quantity to its canonical string form.

    Binary inputs stay binary (``4096Mi`` -> ``4Gi``), everything else uses
    decimal suffixes (``4000M`` -> ``4G``). Fractions fall back to milli units.
    """
    text = str(value).strip()
    amount: Decimal = parse_quantity(text)
    if amount < 0:
        raise ValueError(f"quantity must not be negative: {text!r}")

    if amount == amount.to_integral_value():
        n = int(amount)
        if n == 0:
            return "0"
        suffixes = _BINARY_SUFFIXES if text.endswith("i") else _DECIMAL_SUFFIXES
        for suffix, factor in suffixes:
            if n % factor == 0:
                return f"{n // factor}{suffix}"
        return str(n)

    milli = amount * 1000
    if milli == milli.to_integral_value():
        return f"{int(milli)}m"
    raise ValueError(f"quantity {text!r} is more precise than 1m")


Quantity = Annotated[str, BeforeValidator(canonical_quantity)]


@dataclass(frozen=True)
class ClusterIdentity:
    """A nested cluster's name and the host namespace its resources live in."""

    name: str
    namespace: str = "default"

    @property
    def control_plane_name(self) -> str:
        return f"{self.name}-cp"

    @property
    def machine_deployment_name(self) -> str:
        return f"{self.name}-md-0"

    @property
    def kubeconfig_secret_name(self) -> str:
        return f"{self.name}-kubeconfig"


class ProvisioningParameters(BaseModel):
    """Everything `knest create` can be told about the nested cluster."""

    model_config = ConfigDict(extra="forbid")

    kubernetes_version: str = "1.24.0"

    # Replicas
    control_plane_machine_count: int = Field(1, ge=0)
    worker_machine_count: int = Field(1, ge=0)

    # Networking
    pod_network_cidr: str = "192.168.0.0/16"
    service_cidr: str = "10.96.0.0/12"

    # Control plane machines
    control_plane_machine_cpu_cores: int = Field(2, ge=1)
    control_plane_machine_memory_size: Quantity = "4Gi"
    control_plane_machine_kernel_image: str = ""
    control_plane_machine_rootfs_image: str = ""
    control_plane_machine_rootfs_size: Quantity = "4Gi"

    # Worker machines
    worker_machine_cpu_cores: int = Field(2, ge=1)
    worker_machine_memory_size: Quantity = "4Gi"
    worker_machine_kernel_image: str = ""
    worker_machine_rootfs_image: str = ""
    worker_machine_rootfs_size: Quantity = "4Gi"

    # Persistent machines (CDI rootfs + static addresses from an IPPool)
    persistent: bool = False
    machine_addresses: List[str] = Field(default_factory=list)
    host_cluster_cni: Optional[str] = None

    # Cluster template URL; replaces the default provider flavors
    from_url: Optional[str] = None


class KnestSettings(BaseModel):
    """Contents of the optional ~/.knest/config.yaml."""

    model_config = ConfigDict(extra="forbid")

    namespace: str = "default"
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    log_dir: Optional[str] = None
    create: ProvisioningParameters = Field(default_factory=ProvisioningParameters)
