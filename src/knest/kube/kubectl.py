# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/kube/kubectl.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from knest.errors import CommandError
from knest.execution.runner import CommandRunner

log = logging.getLogger("knest")


class KubectlError(CommandError):
    pass


@dataclass(frozen=True)
class ResourceRef:
    kind: str
    name: str
    namespace: Optional[str] = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.name} (namespace {self.namespace})"
        return f"{self.kind}/{self.name}"


class KubectlClient:
    """
    Thin wrapper around the `kubectl` CLI, targeting the HOST cluster.

    Mirrors what an operator would type by hand; every call goes through
    CommandRunner so argv and output land in the run log.
    """

    def __init__(
        self,
        *,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
    ):
        self.kubeconfig = kubeconfig
        self.context = context
        self.runner = runner or CommandRunner(label="kubectl", error_cls=KubectlError)

    # ------------------------- internal helpers -------------------------

    def _base(self) -> list[str]:
        cmd = ["kubectl"]
        if self.kubeconfig:
            cmd += ["--kubeconfig", self.kubeconfig]
        if self.context:
            cmd += ["--context", self.context]
        return cmd

    @staticmethod
    def _ns(namespace: Optional[str]) -> list[str]:
        return ["--namespace", namespace] if namespace else []

    def _output(self, args: list[str]) -> str:
        cp = self.runner.run(self._base() + args, capture_output=True, check=True)
        return cp.stdout or ""

    def _stream(self, args: list[str], *, stdin_text: Optional[str] = None) -> None:
        self.runner.run(self._base() + args, stdin_text=stdin_text, check=True)

    # ------------------------- queries -------------------------

    def exists(self, kind: str, name: str, namespace: Optional[str] = None) -> bool:
        """
        True when the object exists. A missing object is a normal result;
        only a failing kubectl (unreachable / unauthorized) raises.
        """
        out = self._output(
            ["get", kind, name, "--ignore-not-found", "-o", "name"] + self._ns(namespace)
        )
        return bool(out.strip())

    def jsonpath(self, ref: ResourceRef, expression: str) -> str:
        out = self._output(
            ["get", ref.kind, ref.name] + self._ns(ref.namespace) + ["-o", f"jsonpath={expression}"]
        )
        return out.strip()

    def get_json(self, ref: ResourceRef) -> dict:
        out = self._output(["get", ref.kind, ref.name] + self._ns(ref.namespace) + ["-o", "json"])
        try:
            return json.loads(out)
        except json.JSONDecodeError as e:
            raise KubectlError(f"failed to parse kubectl output for {ref} as JSON: {e}") from e

    def list_wide(self, kind: str, namespace: Optional[str] = None) -> None:
        self._stream(["get", kind] + self._ns(namespace) + ["-o", "wide"])

    # ------------------------- mutations -------------------------

    def apply_file(self, path: Path | str) -> None:
        self._stream(["apply", "-f", str(path)])

    def apply_url(self, url: str) -> None:
        self._stream(["apply", "-f", url])

    def apply_content(self, manifest: str) -> None:
        self._stream(["apply", "-f", "-"], stdin_text=manifest)

    def create_namespace(self, name: str) -> None:
        self._stream(["create", "namespace", name])

    def delete(
        self,
        ref: ResourceRef,
        *,
        wait: bool = True,
        ignore_not_found: bool = True,
    ) -> None:
        args = ["delete", ref.kind, ref.name] + self._ns(ref.namespace)
        if wait:
            args.append("--wait")
        if ignore_not_found:
            args.append("--ignore-not-found")
        self._stream(args)

    def patch_merge(self, ref: ResourceRef, patch: dict) -> None:
        self._stream(
            ["patch", ref.kind, ref.name]
            + self._ns(ref.namespace)
            + ["--type", "merge", "--patch", json.dumps(patch, separators=(",", ":"))]
        )

    # ------------------------- waits -------------------------

    def wait_argv(
        self,
        ref: ResourceRef,
        condition: str,
        *,
        timeout_seconds: Optional[int] = None,
    ) -> list[str]:
        """argv for `kubectl wait`; no timeout means wait forever (-1s)."""
        timeout = "-1s" if timeout_seconds is None else f"{timeout_seconds}s"
        return (
            self._base()
            + ["wait", ref.kind, ref.name]
            + self._ns(ref.namespace)
            + ["--for", f"condition={condition}", "--timeout", timeout]
        )
