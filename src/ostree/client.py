# src/ostree/client.py — v1
"""rpm-ostree status client.

Reads the package-layering daemon's structured status through the host
execution adapter. The JSON schema and the ``<osname>-<commit>``
deployment id format belong to rpm-ostree; all parsing of them lives here
so schema drift is fixed in one place.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from ibuimager.core.models import Deployment, DeploymentStatus
from ibuimager.ops.base_ops import BaseOps, HostCommandError

logger = logging.getLogger(__name__)

RPMOSTREE = "rpm-ostree"


class StatusQueryError(Exception):
    """rpm-ostree status could not be queried or understood."""


def parse_status(raw: str) -> DeploymentStatus:
    """Parse ``rpm-ostree status --json`` output.

    Raises:
        StatusQueryError: If the output is not valid JSON or does not match
            the expected schema.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StatusQueryError(f"Unparsable rpm-ostree status: {exc}") from exc
    if not isinstance(data, dict):
        raise StatusQueryError("Unparsable rpm-ostree status: expected a JSON object")
    try:
        return DeploymentStatus.model_validate(data)
    except ValidationError as exc:
        raise StatusQueryError(f"Unexpected rpm-ostree status schema: {exc}") from exc


class RpmOstreeClient:
    """Query rpm-ostree on the host.

    Args:
        ops: Host execution backend.
        client_id: Value of RPMOSTREE_CLIENT_ID reported to the daemon.
    """

    def __init__(self, ops: BaseOps, client_id: str = "ibu-imager") -> None:
        self._ops = ops
        self._client_id = client_id

    @property
    def _env(self) -> dict[str, str]:
        return {"RPMOSTREE_CLIENT_ID": self._client_id}

    async def query_status(self) -> DeploymentStatus:
        """Return the current deployment list. Never cached."""
        try:
            raw = await self._ops.run(RPMOSTREE, "status", "--json", env=self._env)
        except HostCommandError as exc:
            raise StatusQueryError(f"Failed to query rpm-ostree status: {exc}") from exc
        return parse_status(raw)

    async def query_version(self) -> str:
        """Return ``rpm-ostree --version`` output, for diagnostics only."""
        raw = await self._ops.run(RPMOSTREE, "--version", env=self._env)
        return raw.strip()

    async def booted_deployment(self) -> Deployment:
        """Return the booted deployment, selected by its booted flag."""
        status = await self.query_status()
        try:
            deployment = status.booted()
            logger.debug(
                "Booted deployment %s (osname=%s, commit=%s)",
                deployment.id, deployment.osname, deployment.commit,
            )
        except ValueError as exc:
            raise StatusQueryError(str(exc)) from exc
        return deployment
