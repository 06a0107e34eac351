from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol, Sequence

from .config import PrepConfig
from .lib.hostops import HostOps
from .release import Artifacts, ReleaseDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrepCtx:
    release: ReleaseDescriptor
    arch: str
    outdir: Path
    cfg: PrepConfig
    ops: HostOps
    verbose: bool = False

    @property
    def work_dir(self) -> Path:
        return self.outdir / "work"

    @property
    def artifacts(self) -> Artifacts:
        return Artifacts(outdir=self.outdir, release=self.release.release, arch=self.arch)


class Step(Protocol):
    """A single step of the preparation workflow."""

    step_id: str

    def run(self, ctx: PrepCtx) -> None:
        ...


def run_pipeline(*, ctx: PrepCtx, steps: Sequence[Step]) -> List[str]:
    """Run steps in order, stopping at the first failure."""

    ran: List[str] = []
    for step in steps:
        logger.info("Running step %s", step.step_id)
        step.run(ctx)
        ran.append(step.step_id)
    return ran
