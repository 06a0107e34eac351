from __future__ import annotations

import logging

from ..pipeline import PrepCtx

logger = logging.getLogger(__name__)


class ExtractContainerStep:
    """Unpacking the container base image is not needed for any artifact yet."""

    step_id = "20_extract_container"

    def run(self, ctx: PrepCtx) -> None:
        logger.info("Skipping container image extraction")
