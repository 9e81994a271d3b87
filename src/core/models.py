# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# === HOST EXECUTION ===


class HostCommandSpec(BaseModel):
    """One host invocation, immutable once built.

    ``shell`` marks commands that rely on pipes, globbing or redirection
    and must be interpreted by a shell; ``program`` then holds the whole
    pre-joined script and ``args`` is empty.
    """

    model_config = ConfigDict(frozen=True)

    program: str
    args: tuple[str, ...] = ()
    shell: bool = False
    cwd: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)
    ok_codes: tuple[int, ...] = (0,)

    def display(self) -> str:
        """Render the command for logs and error messages."""
        return " ".join([self.program, *self.args])


# === BACKUP ARTIFACTS ===


class BackupArtifact(BaseModel):
    """A file produced by a pipeline stage; its existence marks the stage done."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    stage: str

    def exists(self) -> bool:
        return self.path.exists()


# === OS-TREE STATUS ===


class Deployment(BaseModel):
    """One bootable OS-tree deployment as reported by rpm-ostree."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    osname: str
    id: str
    booted: bool = False
    checksum: str | None = None
    base_checksum: str | None = Field(default=None, alias="base-checksum")

    @property
    def commit(self) -> str:
        """Deployment commit, the part of ``id`` after the first ``-``.

        The ``<osname>-<commit>`` id format is owned by rpm-ostree.
        """
        _, sep, commit = self.id.partition("-")
        if not sep or not commit:
            raise ValueError(f"Unexpected deployment id format: {self.id!r}")
        return commit


class DeploymentStatus(BaseModel):
    """Parsed ``rpm-ostree status --json`` output."""

    model_config = ConfigDict(extra="ignore")

    deployments: list[Deployment] = Field(default_factory=list)
    transaction: Any = None

    def booted(self) -> Deployment:
        """Return the single booted deployment.

        Raises:
            ValueError: If zero or several deployments are marked booted.
        """
        booted = [d for d in self.deployments if d.booted]
        if len(booted) != 1:
            raise ValueError(
                f"Expected exactly one booted deployment, found {len(booted)}"
            )
        return booted[0]


# === STATIC POD ===


class EtcdPodSpec(BaseModel):
    """The fields of the etcd static pod container that recert needs."""

    model_config = ConfigDict(frozen=True)

    container_name: str
    image: str


# === SEED IMAGE ===


class SeedImageRef(BaseModel):
    """Destination of the seed image: ``<registry>:<tag>``."""

    model_config = ConfigDict(frozen=True)

    registry: str = ""
    tag: str = "oneimage"

    @field_validator("registry", "tag")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:  # noqa: N805
        return v.strip()

    @property
    def is_set(self) -> bool:
        return bool(self.registry)

    def __str__(self) -> str:
        return f"{self.registry}:{self.tag}"
