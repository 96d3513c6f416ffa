# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/errors.py
from __future__ import annotations

from typing import Optional


class KnestError(RuntimeError):
    """
    Base class for every failure surfaced by knest.

    ``step`` names the provisioning step that failed. The orchestrator
    fills it in on the way out so the CLI can print one contextualised line.
    """

    def __init__(self, message: str, *, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step

    def __str__(self) -> str:
        if self.step:
            return f"{self.step}: {self.message}"
        return self.message


class ProbeTransportError(KnestError):
    """The host cluster could not be queried (unreachable, unauthorized)."""


class InstallError(KnestError):
    """Applying an install manifest or command for a ladder entry failed."""


class WaitError(KnestError):
    """The readiness wait channel closed or errored."""


class WaitCancelled(WaitError):
    """The readiness wait was aborted through its cancel token."""


class InvalidInputError(KnestError):
    """Caller input is malformed; raised before any side effect."""


class TemplateError(KnestError):
    """A template is missing or cannot be rendered with the given parameters."""


class UnsupportedModeError(KnestError):
    """No overlay exists for the requested mode."""


class FileIOError(KnestError):
    """Local file read / write / decode failure."""


class CommandError(KnestError):
    """An external command exited non-zero."""

    def __init__(
        self,
        message: str,
        *,
        argv: Optional[list[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
        step: Optional[str] = None,
    ):
        super().__init__(message, step=step)
        self.argv = argv or []
        self.returncode = returncode
        self.stderr = stderr
