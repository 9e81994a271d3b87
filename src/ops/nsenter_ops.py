# src/ops/nsenter_ops.py — v1
"""Namespace-entry backend: run commands as if directly on the host.

Each call is wrapped in ``nsenter --target 1`` so it gets the mount, PID,
IPC and cgroup namespaces of the host's init process, whatever isolation
the calling container has.
"""

from __future__ import annotations

import logging

from ibuimager.core.models import HostCommandSpec
from ibuimager.ops.base_ops import BaseOps
from ibuimager.ops.direct_ops import run_argv

logger = logging.getLogger(__name__)

NSENTER_NAMESPACES = (
    # Needed by podman on some systemd hosts to create cgroup slices
    "--cgroup",
    # Host container storage and filesystem
    "--mount",
    "--ipc",
    "--pid",
)


class NsenterOps(BaseOps):
    """Execute every command inside the namespaces of PID ``target``."""

    def __init__(self, target: int = 1, shell: str = "bash") -> None:
        self._target = target
        self._shell = shell

    def argv(self, spec: HostCommandSpec) -> list[str]:
        """Build the nsenter argv that runs ``spec`` on the host."""
        prefix = ["nsenter", "--target", str(self._target), *NSENTER_NAMESPACES, "--"]
        if spec.shell:
            return [*prefix, self._shell, "-c", spec.program]
        return [*prefix, spec.program, *spec.args]

    async def execute(self, spec: HostCommandSpec) -> str:
        argv = self.argv(spec)
        logger.debug(
            "Running command: %s", spec.display(),
            extra={"data": {"argv": argv, "shell": spec.shell}},
        )
        return await run_argv(argv, spec)
