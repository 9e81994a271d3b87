# src/ops/ops_factory.py — v1
"""Factory: instantiate the host execution backend from configuration."""

from __future__ import annotations

from ibuimager.config.settings import Settings
from ibuimager.ops.base_ops import BaseOps


def create_ops(settings: Settings | None = None) -> BaseOps:
    """Create the configured host execution backend.

    Args:
        settings: Application settings (IBU_HOST_EXEC_BACKEND). Defaults to nsenter.

    Returns:
        BaseOps instance.

    Raises:
        ValueError: If the backend is not supported.
    """
    backend = "nsenter" if settings is None else settings.host_exec_backend

    if backend == "nsenter":
        from ibuimager.ops.nsenter_ops import NsenterOps
        return NsenterOps()

    if backend == "direct":
        from ibuimager.ops.direct_ops import DirectOps
        return DirectOps()

    raise ValueError(f"Unsupported host execution backend: {backend!r}")
