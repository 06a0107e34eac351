from __future__ import annotations

import logging

from ..lib.extract import ServerImageLayout, extract_server_image
from ..pipeline import PrepCtx
from ..release import server_image

logger = logging.getLogger(__name__)


class ExtractServerStep:
    step_id = "40_extract_server"

    def run(self, ctx: PrepCtx) -> None:
        cfg = ctx.cfg
        image = server_image(ctx.release, ctx.arch, mirror=cfg.mirror)
        layout = ServerImageLayout(
            loop_device=cfg.loop_device,
            volume_group=cfg.volume_group,
            root_volume=cfg.root_volume,
        )

        outputs = extract_server_image(
            ops=ctx.ops,
            image=ctx.work_dir / image.filename,
            work_dir=ctx.work_dir,
            artifacts=ctx.artifacts,
            layout=layout,
            verbose=ctx.verbose,
        )
        for p in outputs:
            logger.info("Artifact: %s", p)
