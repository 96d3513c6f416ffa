# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/kube/probe.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from knest.errors import ProbeTransportError
from knest.kube.kubectl import KubectlClient, KubectlError

log = logging.getLogger("knest")


@dataclass(frozen=True)
class CapabilityMarker:
    """An object whose presence means a component is installed (usually a CRD)."""

    name: str
    kind: str = "crd"
    namespace: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.kind}/{self.name}"


class ResourceProbe:
    def __init__(self, kubectl: KubectlClient):
        self.kubectl = kubectl

    def exists(self, marker: CapabilityMarker) -> bool:
        try:
            present = self.kubectl.exists(marker.kind, marker.name, marker.namespace)
        except KubectlError as e:
            raise ProbeTransportError(f"get {marker}: {e}") from e
        log.debug(f"[probe] {marker} {'present' if present else 'absent'}")
        return present
