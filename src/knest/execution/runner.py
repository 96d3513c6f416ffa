# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/execution/runner.py
from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from knest.errors import CommandError

Cmd = Sequence[Union[str, "os.PathLike[str]"]]

log = logging.getLogger("knest")


@dataclass
class CommandRunner:
    """
    Runs local commands (kubectl, clusterctl) and logs argv, output and exit code.

    With ``capture_output=False`` the child inherits the terminal so the
    operator sees kubectl / clusterctl progress live.
    """

    label: Optional[str] = None
    error_cls: type[CommandError] = CommandError

    def run(
        self,
        cmd: Cmd,
        *,
        stdin_text: str | None = None,
        capture_output: bool = False,
        check: bool = False,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess:
        label = self.label or "cmd"
        argv = [str(c) for c in cmd]
        cmd_str = " ".join(argv)

        log.debug(f"[{label}] $ {cmd_str}")

        start = time.time()
        try:
            result = subprocess.run(
                argv,
                input=stdin_text,
                capture_output=capture_output,
                check=False,
                text=True,
                cwd=cwd,
                env=env,
            )
        except FileNotFoundError as e:
            raise self.error_cls(
                f"{argv[0]} not found on PATH",
                argv=argv,
            ) from e

        duration = time.time() - start

        if result.stdout:
            log.debug(f"[{label}][stdout]\n{result.stdout.rstrip()}")
        if result.stderr:
            log.debug(f"[{label}][stderr]\n{result.stderr.rstrip()}")
        log.debug(f"[{label}][exit {result.returncode}] ({duration:.2f}s)")

        if check and result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise self.error_cls(
                f"run command {cmd_str!r}: exit status {result.returncode}"
                + (f": {stderr}" if stderr else ""),
                argv=argv,
                returncode=result.returncode,
                stderr=stderr,
            )

        return result
