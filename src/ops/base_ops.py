# src/ops/base_ops.py — v1
"""Abstract host execution interface.

Every component touches the host only through a BaseOps instance. Backends
decide how a HostCommandSpec reaches the host (namespace entry, direct
exec, simulation in tests); callers only build specs and read output.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from ibuimager.core.models import HostCommandSpec

logger = logging.getLogger(__name__)

# systemctl is-active exits 3 for inactive/failed units
SYSTEMCTL_INACTIVE = 3
# systemctl is-enabled exits 1 for disabled/static/masked units
SYSTEMCTL_NOT_ENABLED = 1

_STATE_QUERY_OK_CODES = {
    "is-active": (0, SYSTEMCTL_INACTIVE),
    "is-enabled": (0, SYSTEMCTL_NOT_ENABLED),
}


class HostCommandError(Exception):
    """A host command exited with a non-accepted status."""

    def __init__(
        self,
        program: str,
        args: tuple[str, ...] | list[str],
        returncode: int | None,
        stderr: str = "",
    ) -> None:
        self.program = program
        self.command_args = tuple(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit status {returncode}"
        super().__init__(
            f"error running {' '.join([program, *self.command_args])}: {detail}"
        )


class BaseOps(ABC):
    """Unified interface for host execution backends."""

    @abstractmethod
    async def execute(self, spec: HostCommandSpec) -> str:
        """Run a command on the host and return its stdout.

        Raises:
            HostCommandError: If the exit status is not in ``spec.ok_codes``.
        """

    async def run(
        self,
        program: str,
        *args: str,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        ok_codes: tuple[int, ...] = (0,),
    ) -> str:
        """Run ``program`` with an argv list (no shell interpretation)."""
        spec = HostCommandSpec(
            program=program,
            args=tuple(str(a) for a in args),
            cwd=cwd,
            env=env or {},
            ok_codes=ok_codes,
        )
        return await self.execute(spec)

    async def run_shell(
        self,
        script: str,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> str:
        """Run a pre-joined shell pipeline (pipes, globs, redirection)."""
        spec = HostCommandSpec(
            program=script, shell=True, cwd=cwd, env=env or {},
        )
        return await self.execute(spec)

    async def systemctl(self, action: str, unit: str) -> str:
        """Run a systemctl action and return its trimmed output.

        ``is-active`` and ``is-enabled`` tolerate their negative exit codes
        so callers can read the state instead of handling an error.
        """
        ok_codes = _STATE_QUERY_OK_CODES.get(action, (0,))
        output = await self.run("systemctl", action, unit, ok_codes=ok_codes)
        return output.strip()


def merged_env(extra: dict[str, str]) -> dict[str, str] | None:
    """Process environment plus ``extra``; None when there is nothing to add."""
    if not extra:
        return None
    env = dict(os.environ)
    env.update(extra)
    return env
