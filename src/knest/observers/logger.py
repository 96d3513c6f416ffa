# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
import logging
from .events import BaseEvent, ProvisionSummary, StepFailed

# identity fields repeated on every event; the run log already has them
_CONTEXT_FIELDS = ("ts", "run_id", "cluster", "namespace")


class LoggerObserver:
    """Writes events into the run log. Failures also reach the console."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        etype = event.__class__.__name__
        fields = ", ".join(
            f"{k}={v}" for k, v in event.dict().items() if k not in _CONTEXT_FIELDS and v is not None
        )
        where = f"{event.namespace}/{event.cluster}" if event.cluster else "-"

        level = logging.DEBUG
        if isinstance(event, StepFailed):
            level = logging.WARNING
        elif isinstance(event, ProvisionSummary) and event.status != "OK":
            level = logging.WARNING

        self.logger.log(level, f"[EVENT] {etype} {where}: {fields}")
