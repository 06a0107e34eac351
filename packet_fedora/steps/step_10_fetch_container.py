from __future__ import annotations

import logging

from ..lib.fetch import fetch_and_verify
from ..pipeline import PrepCtx
from ..release import container_image

logger = logging.getLogger(__name__)


class FetchContainerStep:
    step_id = "10_fetch_container"

    def run(self, ctx: PrepCtx) -> None:
        image = container_image(ctx.release, ctx.arch, mirror=ctx.cfg.mirror)
        path = fetch_and_verify(image, ctx.work_dir, verbose=ctx.verbose)
        logger.info("Container image ready: %s", path)
