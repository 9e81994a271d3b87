# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests.

Tests under ``ops`` and the archive tests spawn real processes through
DirectOps and are skipped when the binaries they need are missing. The
resume tests stay on RecordingOps but let commands materialize their
output files, so marker gating runs against a real filesystem.
"""

from __future__ import annotations

import shlex
from pathlib import Path

import pytest

from ibuimager.core.models import HostCommandSpec
from ibuimager.ops.direct_ops import DirectOps


# ── Pytest markers ──────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "host: marks tests that spawn real host binaries")


@pytest.fixture
def direct_ops() -> DirectOps:
    return DirectOps()


@pytest.fixture
def materialize(settings):
    """Responder that creates the file each simulated command would write."""

    def responder(spec: HostCommandSpec) -> str | None:
        if spec.shell and " && mv -f " in spec.program:
            _, dest = shlex.split(spec.program.rsplit(" && mv -f ", 1)[1])
            Path(dest).write_text("x", encoding="utf-8")
        elif spec.program == "cp":
            Path(spec.args[1]).write_text("x", encoding="utf-8")
        elif "--dry-run" in spec.args:
            (settings.backup_dir / "recert.summary").write_text("", encoding="utf-8")
        return None

    return responder
