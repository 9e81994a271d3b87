# src/pipeline/runner.py — v1
"""Stage runner - execute pipeline stages in order with marker gating.

Walks the stage list strictly sequentially:
  - stages whose markers all exist are skipped
  - the first failure of a fatal stage aborts the run, with no rollback;
    artifacts of completed stages stay on disk so the next run resumes
  - failures of non-fatal stages are logged and recorded

There is no retry: the operator re-invokes after remediation.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from ibuimager.logging.context import set_stage_context
from ibuimager.pipeline.stage import PipelineStage

logger = logging.getLogger(__name__)


class StageFailedError(Exception):
    """A fatal stage failed; the run was aborted."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause}")


@dataclass
class RunResult:
    """Result of a full pipeline run."""

    success: bool = True
    executed_stages: list[str] = field(default_factory=list)
    skipped_stages: list[str] = field(default_factory=list)
    failed_stages: list[str] = field(default_factory=list)
    duration_ms: int = 0
    image: str | None = None


class StageRunner:
    """Execute stages in order against the host."""

    def __init__(self, stages: Sequence[PipelineStage]) -> None:
        self._stages = list(stages)

    def pending(self) -> list[str]:
        """Names of stages that would run now."""
        return [s.name for s in self._stages if not s.is_done()]

    async def run(self, result: RunResult | None = None) -> RunResult:
        """Run all stages.

        Raises:
            StageFailedError: On the first fatal stage failure.
        """
        result = result or RunResult()
        start_ns = time.monotonic_ns()
        total = len(self._stages)
        pending = self.pending()
        logger.info(
            "%d of %d stages pending: %s", len(pending), total, ", ".join(pending) or "-",
        )

        try:
            for idx, stage in enumerate(self._stages):
                set_stage_context(stage.name)
                if stage.is_done():
                    logger.info(
                        "Stage %d/%d %s: skipping, %s already exists",
                        idx + 1, total, stage.name,
                        ", ".join(a.name for a in stage.artifacts),
                    )
                    result.skipped_stages.append(stage.name)
                    continue

                logger.info(
                    "Stage %d/%d %s: starting%s", idx + 1, total, stage.name,
                    f" ({stage.description})" if stage.description else "",
                )
                try:
                    await stage.action()
                except Exception as exc:
                    result.failed_stages.append(stage.name)
                    if stage.fatal:
                        result.success = False
                        logger.error("Stage %s failed: %s", stage.name, exc)
                        raise StageFailedError(stage.name, exc) from exc
                    logger.warning("Non-fatal stage %s failed: %s", stage.name, exc)
                    continue

                result.executed_stages.append(stage.name)
                logger.info("Stage %d/%d %s: completed", idx + 1, total, stage.name)
        finally:
            set_stage_context(None)
            result.duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

        result.success = not result.failed_stages
        logger.info(
            "Pipeline complete: %d executed, %d skipped, %d failed, %dms",
            len(result.executed_stages),
            len(result.skipped_stages),
            len(result.failed_stages),
            result.duration_ms,
        )
        return result
