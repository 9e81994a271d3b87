# src/config/settings.py — v1
"""Typed configuration loaded from the environment via pydantic-settings.

Single source of truth for host paths, image references and tunables used
by the seed pipeline. Every value can be set with an ``IBU_``-prefixed
environment variable (e.g. ``IBU_BACKUP_DIR``) or in a ``.env`` file, and
overridden per invocation through ``load_settings(**overrides)``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_KUBECONFIG = (
    "/etc/kubernetes/static-pod-resources/kube-apiserver-certs/"
    "secrets/node-kubeconfigs/lb-ext.kubeconfig"
)

# Pull secret written by the machine-config-operator
DEFAULT_AUTH_FILE = "/var/lib/kubelet/config.json"

DEFAULT_VAR_EXCLUDES = [
    "tmp/*",
    "lib/log/*",
    "log/*",
    "lib/containers/*",
    "lib/kubelet/pods/*",
    "lib/cni/bin/*",
]


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="IBU_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === BACKUP LAYOUT ===
    backup_dir: Path = Path("/var/tmp/backup")
    inventory_marker: Path = Path("/var/tmp/container_list.done")
    tmp_dir: Path = Path("/var/tmp")

    # === CLUSTER ===
    kubeconfig: Path = Path(DEFAULT_KUBECONFIG)
    auth_file: Path = Path(DEFAULT_AUTH_FILE)

    # === SEED IMAGE ===
    backup_tag: str = "oneimage"

    # === RECERT PRE-VALIDATION ===
    recert_enabled: bool = True
    recert_image: str = "quay.io/edge-infrastructure/recert:latest"
    etcd_static_pod_file: Path = Path("/etc/kubernetes/manifests/etcd-pod.yaml")
    etcd_data_dir: Path = Path("/var/lib/etcd")
    etcd_endpoint: str = "localhost:2379"
    etcd_ready_timeout: float = 30.0
    etcd_poll_interval: float = 1.0

    # === HOST FILESYSTEM ===
    data_dir: Path = Path("/var")
    var_exclude_patterns: list[str] = list(DEFAULT_VAR_EXCLUDES)
    ostree_repo: Path = Path("/ostree/repo")
    ostree_deploy_root: Path = Path("/ostree/deploy")
    mco_current_config: Path = Path("/etc/machine-config-daemon/currentconfig")
    archive_selinux: bool = True

    # === CONTAINER SHUTDOWN ===
    container_stop_max_procs: int = 10
    container_stop_timeout: int = 5

    # === HOST EXECUTION ===
    host_exec_backend: Literal["nsenter", "direct"] = "nsenter"
    rpmostree_client_id: str = "ibu-imager"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("var_exclude_patterns")
    @classmethod
    def validate_exclude_patterns(cls, v: list[str]) -> list[str]:  # noqa: N805
        """Exclusion patterns are relative to data_dir."""
        for pattern in v:
            if pattern.startswith("/"):
                raise ValueError(
                    f"var_exclude_patterns must be relative to data_dir: {pattern!r}"
                )
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.etcd_ready_timeout <= 0:
            errors.append("ETCD_READY_TIMEOUT must be > 0")

        if self.etcd_poll_interval <= 0:
            errors.append("ETCD_POLL_INTERVAL must be > 0")
        elif self.etcd_poll_interval > self.etcd_ready_timeout:
            errors.append("ETCD_POLL_INTERVAL must be <= ETCD_READY_TIMEOUT")

        if self.container_stop_max_procs < 1:
            errors.append("CONTAINER_STOP_MAX_PROCS must be >= 1")

        if self.container_stop_timeout < 0:
            errors.append("CONTAINER_STOP_TIMEOUT must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def var_exclude_paths(self) -> list[str]:
        """Exclusion patterns anchored under data_dir."""
        return [f"{self.data_dir}/{p}" for p in self.var_exclude_patterns]


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment with optional overrides.

    Args:
        **overrides: Field-level overrides (CLI flags or tests).
            ``None`` values are ignored so unset CLI flags keep defaults.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    return Settings(**values)  # type: ignore[arg-type]
