# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str             # ISO timestamp
    run_id: str         # correlates all events in a single invocation
    cluster: str        # nested cluster name
    namespace: str      # host namespace

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(cluster: str, namespace: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "cluster": cluster,
        "namespace": namespace,
    }


# ---------------------------------------------------------------------
# Create pipeline
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ProvisionStarted(BaseEvent):
    persistent: bool

@dataclass(frozen=True)
class StepStarted(BaseEvent):
    step: str

@dataclass(frozen=True)
class StepSkipped(BaseEvent):
    step: str
    reason: str

@dataclass(frozen=True)
class StepSucceeded(BaseEvent):
    step: str
    duration_s: float

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    step: str
    error: str

@dataclass(frozen=True)
class ComponentInstalled(BaseEvent):
    component: str

@dataclass(frozen=True)
class ManifestApplied(BaseEvent):
    name: str

@dataclass(frozen=True)
class KubeconfigWritten(BaseEvent):
    path: str
    server: str

@dataclass(frozen=True)
class ProvisionSummary(BaseEvent):
    status: str                 # "OK" | "FAILED"
    error: Optional[str] = None


# ---------------------------------------------------------------------
# Day-2 operations
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ClusterScaled(BaseEvent):
    resource: str
    replicas: int

@dataclass(frozen=True)
class ClusterDeleted(BaseEvent):
    kubeconfig_removed: bool
