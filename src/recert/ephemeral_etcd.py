# src/recert/ephemeral_etcd.py — v1
"""Throwaway unauthenticated etcd backed by the node's real data directory.

recert needs a live etcd endpoint to dry-run against. ``EphemeralEtcd`` is
an async context manager: entering launches a detached podman container
and waits until it serves, leaving always kills it, also when the body
raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from types import TracebackType
from typing import Awaitable, Callable

from ibuimager.ops.base_ops import BaseOps, HostCommandError

logger = logging.getLogger(__name__)

CONTAINER_NAME = "recert_etcd"
Probe = Callable[[], Awaitable[bool]]


class EtcdNotReadyError(Exception):
    """The ephemeral etcd did not become healthy before the deadline."""


def host_health_probe(ops: BaseOps, endpoint: str, timeout_s: float = 2.0) -> Probe:
    """Build a probe that fetches ``http://<endpoint>/health`` on the host.

    The request goes through ``ops`` so it reaches the host network, where
    the etcd container listens, whatever namespace this process runs in.
    """
    url = f"http://{endpoint}/health"

    async def probe() -> bool:
        try:
            raw = await ops.run(
                "curl", "--silent", "--fail", "--max-time", f"{timeout_s:g}", url,
            )
        except HostCommandError as exc:
            logger.debug("etcd health probe failed: %s", exc)
            return False
        try:
            body = json.loads(raw)
        except json.JSONDecodeError:
            return False
        return isinstance(body, dict) and str(body.get("health")).lower() == "true"

    return probe


async def wait_until_ready(
    probe: Probe,
    timeout_s: float,
    interval_s: float,
) -> float:
    """Poll ``probe`` until it returns True; return the seconds waited.

    Raises:
        EtcdNotReadyError: If ``timeout_s`` elapses first.
    """
    start = time.monotonic()
    deadline = start + timeout_s
    while True:
        if await probe():
            return time.monotonic() - start
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise EtcdNotReadyError(
                f"etcd not serving after {timeout_s:.1f}s"
            )
        await asyncio.sleep(min(interval_s, remaining))


class EphemeralEtcd:
    """Run an unauthenticated etcd for the duration of an ``async with``.

    Args:
        ops: Host execution backend.
        image: etcd image from the static pod manifest.
        data_dir: Host etcd data directory, bound read-write at /store.
        auth_file: Registry credentials for pulling ``image``.
        probe: Readiness check; defaults to the /health endpoint fetched
            through ``ops``.
        ready_timeout_s: Readiness deadline.
        poll_interval_s: Delay between probes.
    """

    def __init__(
        self,
        ops: BaseOps,
        image: str,
        data_dir: Path,
        auth_file: Path,
        endpoint: str = "localhost:2379",
        probe: Probe | None = None,
        ready_timeout_s: float = 30.0,
        poll_interval_s: float = 1.0,
    ) -> None:
        self._ops = ops
        self._image = image
        self._data_dir = data_dir
        self._auth_file = auth_file
        self._probe = probe or host_health_probe(ops, endpoint)
        self._ready_timeout_s = ready_timeout_s
        self._poll_interval_s = poll_interval_s
        self._started = False

    def run_args(self) -> list[str]:
        return [
            "run", "--name", CONTAINER_NAME,
            "--detach", "--rm", "--network=host", "--privileged",
            "--authfile", str(self._auth_file),
            "--entrypoint", "etcd",
            "-v", f"{self._data_dir}:/store",
            self._image,
            "--name", "editor",
            "--data-dir", "/store",
        ]

    async def start(self) -> None:
        # A run killed mid-recert leaves the detached container behind
        await self._ops.run("podman", "rm", "--force", "--ignore", CONTAINER_NAME)
        logger.info("Run unauthenticated etcd server for recert dry-run")
        await self._ops.run("podman", *self.run_args())
        self._started = True

    async def stop(self) -> None:
        if not self._started:
            return
        logger.debug("Kill the unauthenticated etcd server")
        await self._ops.run("podman", "kill", CONTAINER_NAME)
        self._started = False

    async def __aenter__(self) -> EphemeralEtcd:
        await self.start()
        try:
            waited = await wait_until_ready(
                self._probe, self._ready_timeout_s, self._poll_interval_s,
            )
        except BaseException:
            await self._stop_quietly()
            raise
        logger.debug("Unauthenticated etcd serving after %.1fs", waited)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc is None:
            await self.stop()
        else:
            await self._stop_quietly()

    async def _stop_quietly(self) -> None:
        """Stop while another exception is propagating; keep that one."""
        try:
            await self.stop()
        except HostCommandError as kill_exc:
            logger.error("Failed to kill %s container: %s", CONTAINER_NAME, kill_exc)
