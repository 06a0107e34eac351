from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(a)) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - stdout/stderr are captured and logged at DEBUG.
    - check=True raises CommandError on a non-zero exit.
    """

    argv_list = [str(a) for a in argv]
    logger.info("CMD %s", fmt_argv(argv_list))

    p = subprocess.run(
        argv_list,
        input=input_text,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=cwd,
        env=dict(os.environ, **(env or {})),
    )

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, p.stderr or "")

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)


def run_stream(argv: Sequence[str], *, stdin_path: str, stdout_path: str) -> None:
    """Run a filter command reading stdin_path and writing (truncating) stdout_path."""

    argv_list = [str(a) for a in argv]
    logger.info("CMD %s < %s > %s", fmt_argv(argv_list), stdin_path, stdout_path)

    with open(stdin_path, "rb") as src, open(stdout_path, "wb") as dst:
        p = subprocess.run(argv_list, stdin=src, stdout=dst, stderr=subprocess.PIPE)

    stderr = p.stderr.decode("utf-8", errors="replace") if p.stderr else ""
    if stderr:
        logger.debug("STDERR %s", stderr.strip())
    if p.returncode != 0:
        raise CommandError(argv_list, p.returncode, stderr)
