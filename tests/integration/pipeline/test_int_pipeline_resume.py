# tests/integration/pipeline/test_int_pipeline_resume.py — v1
"""Integration tests: abort mid-pipeline and resume from on-disk markers."""

from __future__ import annotations

import pytest

from ibuimager.core.models import HostCommandSpec
from ibuimager.ops.base_ops import HostCommandError
from ibuimager.pipeline.runner import StageFailedError
from ibuimager.pipeline.seed_creator import SeedCreator
from ibuimager.recert.validator import RecertValidator


@pytest.fixture
def creator_factory(settings, image_ref, ready_probe):
    def build(ops) -> SeedCreator:
        validator = RecertValidator(
            ops,
            recert_image=settings.recert_image,
            etcd_static_pod_file=settings.etcd_static_pod_file,
            etcd_data_dir=settings.etcd_data_dir,
            auth_file=settings.auth_file,
            backup_dir=settings.backup_dir,
            ready_timeout_s=settings.etcd_ready_timeout,
            poll_interval_s=settings.etcd_poll_interval,
            probe=ready_probe,
        )
        return SeedCreator(settings, image_ref, ops, validator=validator)
    return build


@pytest.fixture
def node_ops(ops, materialize, status_json):
    ops.respond(materialize)
    ops.respond_to("rpm-ostree status --json", status_json)
    ops.respond_to("is-active", "active")
    return ops


class TestResume:
    @pytest.mark.asyncio
    async def test_second_run_only_rebuilds_image(self, node_ops, creator_factory, settings,
                                                  booted_commit):
        first = await creator_factory(node_ops).create_seed_image()
        assert first.success
        assert (settings.backup_dir / f"ostree-{booted_commit}.origin").exists()

        node_ops.calls.clear()
        second = await creator_factory(node_ops).create_seed_image()
        assert second.executed_stages == ["shutdown", "backup_origin", "assemble"]
        assert not node_ops.called("tar ")
        assert not node_ops.called("cp ")

    @pytest.mark.asyncio
    async def test_resume_after_failed_stage(self, ops, materialize, status_json,
                                             creator_factory, settings):
        broken = {"ostree": True}

        def ostree_archive(spec: HostCommandSpec) -> str | None:
            if broken["ostree"] and "ostree.tgz" in spec.display():
                raise HostCommandError("bash", (), 2, "tar: /ostree/repo: Cannot open")
            return None

        # ahead of materialize: the failed archive must not appear
        ops.respond(ostree_archive)
        ops.respond(materialize)
        ops.respond_to("rpm-ostree status --json", status_json)
        ops.respond_to("is-active", "active")

        with pytest.raises(StageFailedError, match="backup_ostree"):
            await creator_factory(ops).create_seed_image()
        b = settings.backup_dir
        assert (b / "var.tgz").exists()
        assert (b / "etc.tgz").exists()
        assert not (b / "ostree.tgz").exists()
        assert not ops.called("podman build")

        broken["ostree"] = False
        ops.calls.clear()
        result = await creator_factory(ops).create_seed_image()
        assert result.skipped_stages == ["inventory", "recert", "backup_var", "backup_etc"]
        assert result.executed_stages[:2] == ["shutdown", "backup_ostree"]
        assert (b / "ostree.tgz").exists()
        assert ops.called("podman push")
