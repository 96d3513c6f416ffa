# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/delete.py
from __future__ import annotations

import logging
from typing import Optional

from knest.config.models import ClusterIdentity
from knest.kube.kubectl import KubectlClient, ResourceRef
from knest.observers.dispatcher import EventBus
from knest.observers.events import ClusterDeleted, new_ctx
from .credentials import CredentialStore
from .ippool import IPPOOL_KIND

log = logging.getLogger("knest")

CLUSTER_KIND = "clusters.cluster.x-k8s.io"


class DeleteController:
    def __init__(
        self,
        kubectl: KubectlClient,
        credentials: CredentialStore,
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
    ):
        self.kubectl = kubectl
        self.credentials = credentials
        self.bus = bus or EventBus()
        self.run_id = run_id

    def delete(self, identity: ClusterIdentity) -> None:
        """
        Remove the Cluster (blocking until it is gone), its IPPool and the
        local kubeconfig. Anything already absent is skipped silently.
        """
        log.info(f"Deleting cluster {identity.name} in namespace {identity.namespace}")
        self.kubectl.delete(ResourceRef(CLUSTER_KIND, identity.name, identity.namespace))

        # Only persistent clusters own a pool; ignore-not-found covers the rest.
        self.kubectl.delete(ResourceRef(IPPOOL_KIND, identity.name, identity.namespace))

        removed = self.credentials.remove(identity.namespace, identity.name)
        if removed:
            log.info(f"Removed {self.credentials.path(identity.namespace, identity.name)}")

        ctx = new_ctx(identity.name, identity.namespace, run_id=self.run_id)
        self.bus.emit(ClusterDeleted(kubeconfig_removed=removed, **ctx))
