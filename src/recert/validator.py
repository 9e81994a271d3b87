# src/recert/validator.py — v1
"""recert --dry-run pre-check.

Verifies that the cluster can be re-certified error-free before it is
sealed into a seed image. recert runs against the real static-pod
directories and an ephemeral etcd backed by the real data directory, and
writes a summary without sensitive data into the backup directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ibuimager.ops.base_ops import BaseOps, HostCommandError
from ibuimager.recert.ephemeral_etcd import EphemeralEtcd, EtcdNotReadyError, Probe
from ibuimager.recert.etcd_manifest import EtcdImageNotFoundError, get_etcd_image

logger = logging.getLogger(__name__)

SUMMARY_FILE = "recert.summary"

# host path -> container mount point, each passed to recert as --static-dir
STATIC_DIRS = {
    "/etc/kubernetes": "/kubernetes",
    "/var/lib/kubelet": "/kubelet",
    "/etc/machine-config-daemon": "/machine-config-daemon",
}


class RecertValidationError(Exception):
    """The recert dry-run could not be launched or reported a failure."""


class RecertValidator:
    """Run recert in dry-run mode against an ephemeral etcd."""

    def __init__(
        self,
        ops: BaseOps,
        recert_image: str,
        etcd_static_pod_file: Path,
        etcd_data_dir: Path,
        auth_file: Path,
        backup_dir: Path,
        etcd_endpoint: str = "localhost:2379",
        ready_timeout_s: float = 30.0,
        poll_interval_s: float = 1.0,
        probe: Probe | None = None,
    ) -> None:
        self._ops = ops
        self._recert_image = recert_image
        self._etcd_static_pod_file = etcd_static_pod_file
        self._etcd_data_dir = etcd_data_dir
        self._auth_file = auth_file
        self._backup_dir = backup_dir
        self._etcd_endpoint = etcd_endpoint
        self._ready_timeout_s = ready_timeout_s
        self._poll_interval_s = poll_interval_s
        self._probe = probe

    @property
    def summary_path(self) -> Path:
        return self._backup_dir / SUMMARY_FILE

    def recert_args(self) -> list[str]:
        args = [
            "run", "--rm", "--name", "recert",
            "--network=host", "--privileged",
            "--authfile", str(self._auth_file),
            "-v", f"{self._backup_dir}:/backup",
        ]
        for host_dir, mount in STATIC_DIRS.items():
            args += ["-v", f"{host_dir}:{mount}"]
        args += [self._recert_image, "--etcd-endpoint", self._etcd_endpoint]
        for mount in STATIC_DIRS.values():
            args += ["--static-dir", mount]
        args += [
            "--extend-expiration",
            "--dry-run",
            "--summary-file-clean", f"/backup/{SUMMARY_FILE}",
        ]
        return args

    async def validate(self) -> Path:
        """Run the dry-run; return the summary file path.

        Raises:
            RecertValidationError: On any failure. The ephemeral etcd is
                killed on every exit path.
        """
        logger.info(
            "Running recert --dry-run to validate seed cluster can be "
            "re-certified without errors."
        )
        try:
            etcd_image = get_etcd_image(self._etcd_static_pod_file)
        except EtcdImageNotFoundError as exc:
            raise RecertValidationError(str(exc)) from exc

        etcd = EphemeralEtcd(
            self._ops,
            image=etcd_image,
            data_dir=self._etcd_data_dir,
            auth_file=self._auth_file,
            endpoint=self._etcd_endpoint,
            probe=self._probe,
            ready_timeout_s=self._ready_timeout_s,
            poll_interval_s=self._poll_interval_s,
        )
        try:
            async with etcd:
                logger.debug("Run recert --dry-run tool and save a summary without sensitive data")
                await self._ops.run("podman", *self.recert_args())
        except HostCommandError as exc:
            raise RecertValidationError(f"recert pre-check failed: {exc}") from exc
        except EtcdNotReadyError as exc:
            raise RecertValidationError(f"Unauthenticated etcd failed to start: {exc}") from exc

        logger.info("Recert --dry-run pre-checks and summary created successfully.")
        return self.summary_path
