# src/seed/assembler.py — v1
"""Seed image assembly: single-layer build of the backup directory, then push."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from ibuimager.core.models import SeedImageRef
from ibuimager.ops.base_ops import BaseOps, HostCommandError

logger = logging.getLogger(__name__)

# Copies the whole build context (the backup directory) to the image root
CONTAINERFILE_CONTENT = """\
FROM scratch
COPY . /
"""


class SeedImageError(Exception):
    """Building or pushing the seed image failed."""


class SeedImageAssembler:
    """Build and push the seed image with podman.

    Args:
        ops: Host execution backend.
        tmp_dir: Directory for the temporary Containerfile; must be visible
            to podman on the host.
    """

    def __init__(self, ops: BaseOps, tmp_dir: Path = Path("/var/tmp")) -> None:
        self._ops = ops
        self._tmp_dir = tmp_dir

    async def assemble(
        self,
        backup_dir: Path,
        image_ref: SeedImageRef,
        auth_file: Path,
    ) -> str:
        """Build ``image_ref`` from ``backup_dir`` and push it.

        The temporary Containerfile is removed on every exit path.

        Returns:
            The pushed image reference.

        Raises:
            SeedImageError: With the underlying tool's error text.
        """
        image = str(image_ref)
        logger.info("Build and push OCI image to %s", image)

        containerfile = self._write_containerfile()
        try:
            # note: --squash-all could be added to collapse the layers
            try:
                await self._ops.run(
                    "podman", "build", "-f", str(containerfile), "-t", image, str(backup_dir),
                )
            except HostCommandError as exc:
                raise SeedImageError(f"Failed to build seed image: {exc}") from exc

            try:
                await self._ops.run("podman", "push", "--authfile", str(auth_file), image)
            except HostCommandError as exc:
                raise SeedImageError(f"Failed to push seed image: {exc}") from exc
        finally:
            containerfile.unlink(missing_ok=True)

        logger.info("OCI image created successfully!")
        return image

    def _write_containerfile(self) -> Path:
        try:
            fd, name = tempfile.mkstemp(prefix="containerfile-", dir=self._tmp_dir)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(CONTAINERFILE_CONTENT)
        except OSError as exc:
            raise SeedImageError(f"Error creating temporary Containerfile: {exc}") from exc
        return Path(name)
