# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a recording host-execution backend, settings rooted in a temp
directory, and sample rpm-ostree / static pod documents. No host access:
every command goes to RecordingOps unless a test opts into DirectOps.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from ibuimager.config.settings import Settings
from ibuimager.core.models import HostCommandSpec, SeedImageRef
from ibuimager.ops.base_ops import BaseOps, HostCommandError

BOOTED_COMMIT = "7c8b2e1f0a9d3b4c5e6f7a8b9c0d1e2f3a4b5c6d7e8f9a0b1c2d3e4f5a6b7c8d.0"

Responder = Callable[[HostCommandSpec], "str | None"]


class RecordingOps(BaseOps):
    """Simulation backend: records every spec and answers from responders.

    Responders are tried in order; the first non-None answer wins. A
    responder may raise HostCommandError to simulate a failing command.
    Unanswered commands return "".
    """

    def __init__(self) -> None:
        self.calls: list[HostCommandSpec] = []
        self._responders: list[Responder] = []

    def respond(self, responder: Responder) -> None:
        self._responders.append(responder)

    def respond_to(self, needle: str, output: str) -> None:
        """Answer ``output`` to any command whose text contains ``needle``."""
        self.respond(lambda spec: output if needle in spec.display() else None)

    def fail_on(self, needle: str, stderr: str = "boom", returncode: int = 1) -> None:
        def responder(spec: HostCommandSpec) -> str | None:
            if needle in spec.display():
                raise HostCommandError(spec.program, spec.args, returncode, stderr)
            return None
        self.respond(responder)

    async def execute(self, spec: HostCommandSpec) -> str:
        self.calls.append(spec)
        for responder in self._responders:
            answer = responder(spec)
            if answer is not None:
                return answer
        return ""

    @property
    def commands(self) -> list[str]:
        return [spec.display() for spec in self.calls]

    def called(self, needle: str) -> bool:
        return any(needle in c for c in self.commands)


def make_status(
    commit: str = BOOTED_COMMIT,
    osname: str = "rhcos",
    booted_index: int = 0,
    count: int = 2,
) -> str:
    """rpm-ostree status --json output with ``count`` deployments."""
    deployments = []
    for i in range(count):
        c = commit if i == booted_index else f"{i:064x}.0"
        deployments.append({
            "id": f"{osname}-{c}",
            "osname": osname,
            "booted": i == booted_index,
            "checksum": c.split(".")[0],
            "base-checksum": None,
            "version": "414.92.202310170514-0",
        })
    return json.dumps({"deployments": deployments, "transaction": None})


ETCD_POD_YAML = """\
apiVersion: v1
kind: Pod
metadata:
  name: etcd
  namespace: openshift-etcd
spec:
  containers:
  - name: etcdctl
    image: quay.io/openshift/etcdctl@sha256:aaa
  - name: etcd
    image: quay.io/openshift/etcd@sha256:bbb
  - name: etcd-metrics
    image: quay.io/openshift/etcd@sha256:bbb
"""


# === FIXTURES ===


@pytest.fixture
def ops() -> RecordingOps:
    return RecordingOps()


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """Fake host filesystem root."""
    root = tmp_path / "host"
    (root / "var" / "tmp").mkdir(parents=True)
    (root / "etc" / "kubernetes" / "manifests").mkdir(parents=True)
    (root / "etc" / "kubernetes" / "manifests" / "etcd-pod.yaml").write_text(
        ETCD_POD_YAML, encoding="utf-8",
    )
    return root


@pytest.fixture
def settings(host_root: Path) -> Settings:
    """Settings with every host path under ``host_root``."""
    return Settings(
        _env_file=None,
        backup_dir=host_root / "var" / "tmp" / "backup",
        inventory_marker=host_root / "var" / "tmp" / "container_list.done",
        tmp_dir=host_root / "var" / "tmp",
        kubeconfig=host_root / "etc" / "kubernetes" / "kubeconfig",
        auth_file=host_root / "var" / "lib" / "kubelet" / "config.json",
        etcd_static_pod_file=host_root / "etc" / "kubernetes" / "manifests" / "etcd-pod.yaml",
        etcd_data_dir=host_root / "var" / "lib" / "etcd",
        data_dir=host_root / "var",
        ostree_repo=host_root / "ostree" / "repo",
        ostree_deploy_root=host_root / "ostree" / "deploy",
        mco_current_config=host_root / "etc" / "machine-config-daemon" / "currentconfig",
        etcd_ready_timeout=1.0,
        etcd_poll_interval=0.01,
    )


@pytest.fixture
def image_ref() -> SeedImageRef:
    return SeedImageRef(registry="quay.io/example/seed", tag="oneimage")


@pytest.fixture
def status_json() -> str:
    return make_status()


async def always_ready() -> bool:
    return True


@pytest.fixture
def ready_probe():
    """Readiness probe that succeeds immediately."""
    return always_ready


@pytest.fixture
def booted_commit() -> str:
    return BOOTED_COMMIT


@pytest.fixture
def status_factory():
    """Factory for rpm-ostree status documents (see make_status)."""
    return make_status


@pytest.fixture
def etcd_pod_yaml() -> str:
    return ETCD_POD_YAML


@pytest.fixture
def seeded_backup(settings: Settings, booted_commit: str) -> Path:
    """Backup directory in which every stage artifact already exists."""
    b = settings.backup_dir
    b.mkdir(parents=True)
    for name in (
        "containers.list", "catalogimages.list", "clusterversion.json",
        "var.tgz", "etc.tgz", "etc.deletions", "ostree.tgz",
        "rpm-ostree.json", "mco-currentconfig.json", "recert.summary",
        f"ostree-{booted_commit}.origin",
    ):
        (b / name).write_text("x", encoding="utf-8")
    settings.inventory_marker.touch()
    return b
