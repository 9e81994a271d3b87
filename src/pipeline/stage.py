# src/pipeline/stage.py — v1
"""Pipeline stage descriptor."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from ibuimager.core.models import BackupArtifact

StageAction = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class PipelineStage:
    """A named step of the seed pipeline.

    A stage is DONE when all of its markers exist; stages without markers
    always run and handle their own idempotence. Stages are stateless: the
    markers on disk are their only persisted identity.
    """

    name: str
    action: StageAction
    markers: tuple[Path, ...] = ()
    fatal: bool = True
    description: str = ""

    def is_done(self) -> bool:
        return bool(self.markers) and all(p.exists() for p in self.markers)

    @property
    def artifacts(self) -> list[BackupArtifact]:
        return [
            BackupArtifact(name=p.name, path=p, stage=self.name)
            for p in self.markers
        ]
