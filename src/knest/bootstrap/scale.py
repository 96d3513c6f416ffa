# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/scale.py
from __future__ import annotations

import logging
from typing import Optional

from knest.config.models import ClusterIdentity
from knest.errors import InvalidInputError
from knest.kube.kubectl import KubectlClient, ResourceRef
from knest.observers.dispatcher import EventBus
from knest.observers.events import ClusterScaled, new_ctx

log = logging.getLogger("knest")

CONTROL_PLANE_KIND = "kubeadmcontrolplane.controlplane.cluster.x-k8s.io"
MACHINE_DEPLOYMENT_KIND = "machinedeployment.cluster.x-k8s.io"


class ScaleController:
    def __init__(
        self,
        kubectl: KubectlClient,
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
    ):
        self.kubectl = kubectl
        self.bus = bus or EventBus()
        self.run_id = run_id

    def scale(
        self,
        identity: ClusterIdentity,
        *,
        control_plane: Optional[int] = None,
        workers: Optional[int] = None,
    ) -> list[ResourceRef]:
        """
        Merge-patch `spec.replicas` on the control plane and/or the worker
        MachineDeployment. None leaves that side alone; 0 is a real value.
        """
        for label, value in (("control-plane", control_plane), ("worker", workers)):
            if value is not None and value < 0:
                raise InvalidInputError(f"{label} replicas must not be negative: {value}")

        targets = []
        if control_plane is not None:
            targets.append(
                (ResourceRef(CONTROL_PLANE_KIND, identity.control_plane_name, identity.namespace), control_plane, "control-plane")
            )
        if workers is not None:
            targets.append(
                (ResourceRef(MACHINE_DEPLOYMENT_KIND, identity.machine_deployment_name, identity.namespace), workers, "worker")
            )

        if not targets:
            log.info("Nothing to scale")
            return []

        ctx = new_ctx(identity.name, identity.namespace, run_id=self.run_id)
        patched = []
        for ref, replicas, label in targets:
            log.info(f"Setting {label} replicas of {identity.name} to {replicas}")
            self.kubectl.patch_merge(ref, {"spec": {"replicas": replicas}})
            self.bus.emit(ClusterScaled(resource=f"{ref.kind}/{ref.name}", replicas=replicas, **ctx))
            patched.append(ref)
        return patched
