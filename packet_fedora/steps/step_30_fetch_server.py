from __future__ import annotations

import logging

from ..lib.fetch import fetch_and_verify
from ..pipeline import PrepCtx
from ..release import server_image

logger = logging.getLogger(__name__)


class FetchServerStep:
    step_id = "30_fetch_server"

    def run(self, ctx: PrepCtx) -> None:
        image = server_image(ctx.release, ctx.arch, mirror=ctx.cfg.mirror)
        path = fetch_and_verify(image, ctx.work_dir, verbose=ctx.verbose)
        logger.info("Server image ready: %s", path)
