# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/kube/waiter.py
from __future__ import annotations

import logging
import subprocess
import threading
from typing import Optional, Protocol

from knest.errors import WaitCancelled, WaitError
from knest.kube.kubectl import KubectlClient, ResourceRef

log = logging.getLogger("knest")


class CancelToken:
    """Cooperative cancellation for blocking waits."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class Waiter(Protocol):
    def wait_for(
        self,
        ref: ResourceRef,
        condition: str,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> None: ...


class KubectlWaiter:
    """
    Blocks on `kubectl wait --for condition=...` until the condition is true.

    ``timeout_seconds=None`` (the default, and what provisioning always uses)
    waits forever. The only ways out are the condition becoming true, kubectl
    failing, the cancel token firing, or the process being killed.
    """

    def __init__(
        self,
        kubectl: KubectlClient,
        *,
        timeout_seconds: Optional[int] = None,
        poll_interval: float = 1.0,
    ):
        self.kubectl = kubectl
        self.timeout_seconds = timeout_seconds
        self.poll_interval = poll_interval

    def wait_for(
        self,
        ref: ResourceRef,
        condition: str,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> None:
        argv = self.kubectl.wait_argv(ref, condition, timeout_seconds=self.timeout_seconds)
        log.info(f"Waiting for {ref} to be {condition}...")
        log.debug(f"[wait] $ {' '.join(argv)}")

        try:
            proc = subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
        except FileNotFoundError as e:
            raise WaitError(f"wait for {ref} to be {condition}: kubectl not found on PATH") from e

        while True:
            if cancel is not None and cancel.cancelled:
                proc.terminate()
                proc.wait()
                raise WaitCancelled(f"wait for {ref} to be {condition}: cancelled")
            try:
                proc.wait(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                continue

        out, err = proc.communicate()
        if out:
            log.debug(f"[wait][stdout]\n{out.rstrip()}")
        if proc.returncode != 0:
            detail = (err or out or "").strip()
            raise WaitError(
                f"wait for {ref} to be {condition}: exit status {proc.returncode}"
                + (f": {detail}" if detail else "")
            )
