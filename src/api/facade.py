# src/api/facade.py — v1
"""Public API facade - single entry point for seed image creation.

Usage:
    from ibuimager.api.facade import create_seed_image
    result = await create_seed_image(SeedImageRef(registry="quay.io/me/seed"))
"""

from __future__ import annotations

import logging

from ibuimager.config.settings import Settings
from ibuimager.core.models import SeedImageRef
from ibuimager.ops.base_ops import BaseOps
from ibuimager.ops.ops_factory import create_ops
from ibuimager.pipeline.runner import RunResult
from ibuimager.pipeline.seed_creator import SeedCreator

logger = logging.getLogger(__name__)


async def create_seed_image(
    image_ref: SeedImageRef,
    settings: Settings | None = None,
    ops: BaseOps | None = None,
) -> RunResult:
    """Back up the host and build/push the seed image.

    Args:
        image_ref: Destination registry and tag. An empty registry makes
            this a no-op that only prints an operator message.
        settings: Global settings. Loaded from the environment if None.
        ops: Host execution backend. Built from settings if None.

    Returns:
        RunResult describing executed and skipped stages.

    Raises:
        StageFailedError: If a fatal stage fails; completed stages keep
            their artifacts for the next run.
    """
    settings = settings or Settings()
    ops = ops or create_ops(settings)
    logger.debug("Host execution backend: %s", type(ops).__name__)
    creator = SeedCreator(settings=settings, image_ref=image_ref, ops=ops)
    return await creator.create_seed_image()
