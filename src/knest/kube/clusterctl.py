# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/kube/clusterctl.py
from __future__ import annotations

import logging
from typing import Optional

import yaml

from knest.errors import CommandError
from knest.execution.runner import CommandRunner

log = logging.getLogger("knest")


class ClusterctlError(CommandError):
    pass


class ClusterctlClient:
    """Wrapper around the `clusterctl` CLI for the host cluster."""

    def __init__(
        self,
        *,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
    ):
        self.kubeconfig = kubeconfig
        self.context = context
        self.runner = runner or CommandRunner(label="clusterctl", error_cls=ClusterctlError)

    def _base(self) -> list[str]:
        cmd = ["clusterctl"]
        if self.kubeconfig:
            cmd += ["--kubeconfig", self.kubeconfig]
        if self.context:
            cmd += ["--kubeconfig-context", self.context]
        return cmd

    def repositories(self) -> list[str]:
        """Names of the providers clusterctl already knows about."""
        cp = self.runner.run(
            ["clusterctl", "config", "repositories", "-o", "yaml"],
            capture_output=True,
            check=True,
        )
        try:
            entries = yaml.safe_load(cp.stdout or "") or []
        except yaml.YAMLError as e:
            raise ClusterctlError(f"failed to parse clusterctl repositories: {e}") from e
        return [e.get("Name") for e in entries if isinstance(e, dict) and e.get("Name")]

    def init(self, infrastructure: str) -> None:
        self.runner.run(
            self._base() + ["init", "--infrastructure", infrastructure, "--wait-providers"],
            check=True,
        )

    def generate_cluster(
        self,
        name: str,
        *,
        target_namespace: str,
        kubernetes_version: str,
        control_plane_machine_count: int,
        worker_machine_count: int,
        infrastructure: Optional[str] = None,
        flavor: Optional[str] = None,
        from_url: Optional[str] = None,
        env: Optional[dict[str, str]] = None,
    ) -> str:
        """
        Render the cluster manifest. ``from_url`` and ``infrastructure``/``flavor``
        are mutually exclusive; ``from_url`` wins.
        """
        argv = self._base() + [
            "generate",
            "cluster",
            name,
            "--target-namespace",
            target_namespace,
            "--kubernetes-version",
            kubernetes_version,
            "--control-plane-machine-count",
            str(control_plane_machine_count),
            "--worker-machine-count",
            str(worker_machine_count),
        ]
        if from_url:
            argv += ["--from", from_url]
        else:
            if infrastructure:
                argv += ["--infrastructure", infrastructure]
            if flavor:
                argv += ["--flavor", flavor]

        cp = self.runner.run(argv, capture_output=True, check=True, env=env)
        return cp.stdout or ""
