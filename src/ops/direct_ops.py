# src/ops/direct_ops.py — v1
"""Direct execution backend for processes already running with host scope."""

from __future__ import annotations

import asyncio
import logging

from ibuimager.core.models import HostCommandSpec
from ibuimager.ops.base_ops import BaseOps, HostCommandError, merged_env

logger = logging.getLogger(__name__)


class DirectOps(BaseOps):
    """Execute commands as child processes of this process.

    Shell specs go through ``bash -c``.
    """

    def __init__(self, shell: str = "bash") -> None:
        self._shell = shell

    def argv(self, spec: HostCommandSpec) -> list[str]:
        """Build the argv that runs ``spec``."""
        if spec.shell:
            return [self._shell, "-c", spec.program]
        return [spec.program, *spec.args]

    async def execute(self, spec: HostCommandSpec) -> str:
        argv = self.argv(spec)
        logger.debug(
            "Running command: %s", spec.display(),
            extra={"data": {"argv": argv, "shell": spec.shell}},
        )
        return await run_argv(argv, spec)


async def run_argv(argv: list[str], spec: HostCommandSpec) -> str:
    """Spawn ``argv``, wait for it and enforce ``spec.ok_codes``."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(spec.cwd) if spec.cwd else None,
            env=merged_env(spec.env),
        )
    except OSError as exc:
        raise HostCommandError(spec.program, spec.args, None, str(exc)) from exc

    stdout, stderr = await proc.communicate()
    if proc.returncode not in spec.ok_codes:
        raise HostCommandError(
            spec.program,
            spec.args,
            proc.returncode,
            stderr.decode("utf-8", errors="replace"),
        )
    return stdout.decode("utf-8", errors="replace")
