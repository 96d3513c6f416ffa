# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/knest/logging/log.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

KEEP_RUNS = 20


def default_log_dir() -> Path:
    return Path.home() / ".knest" / "logs"


class _ConsoleFormatter(logging.Formatter):
    """Plain message for INFO and below, `warning: ...` / `error: ...` above."""

    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.lower()}: {msg}"
        return msg


def prune_run_logs(base_dir: Path, name: str, keep: int = KEEP_RUNS) -> list[Path]:
    """Drop all but the newest ``keep`` run logs (and their event files)."""
    runs = sorted(base_dir.glob(f"{name}-*.log"), key=lambda p: p.stat().st_mtime, reverse=True)
    removed = []
    for old in runs[keep:]:
        run_id = old.stem[-36:]
        for path in (old, base_dir / f"{run_id}.jsonl"):
            if path.exists():
                path.unlink()
                removed.append(path)
    return removed


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "knest",
    verbose: bool = False,
    keep: int = KEEP_RUNS,
) -> tuple[logging.Logger, str, Path]:
    """
    Configure the ``knest`` logger for one CLI invocation.

    The file handler records everything (each kubectl / clusterctl argv and
    its output); the console shows INFO, or DEBUG with ``--debug``.
    Returns the logger, the run id shared with the event observers, and the
    log file path.
    """
    run_id = str(uuid.uuid4())

    base_dir = base_dir or default_log_dir()
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{ts}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = False

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(
        logging.Formatter(
            f"%(asctime)s | {run_id[:8]} | %(levelname)-7s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(_ConsoleFormatter("%(message)s"))

    logger.addHandler(fh)
    logger.addHandler(ch)

    for path in prune_run_logs(base_dir, name, keep=keep):
        logger.debug(f"pruned old run log {path.name}")

    logger.debug(f"run_id={run_id} log_file={log_path}")
    return logger, run_id, log_path
