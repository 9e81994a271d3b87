# tests/unit/ops/test_unit_base_ops.py — v1
"""Tests for ops/base_ops.py - convenience helpers and errors."""

from __future__ import annotations

import pytest

from ibuimager.ops.base_ops import (
    SYSTEMCTL_INACTIVE,
    SYSTEMCTL_NOT_ENABLED,
    HostCommandError,
    merged_env,
)


class TestHostCommandError:
    def test_message_carries_command_and_stderr(self):
        err = HostCommandError("tar", ("czf", "/b/var.tgz"), 2, "No space left\n")
        assert "tar czf /b/var.tgz" in str(err)
        assert "No space left" in str(err)
        assert err.returncode == 2
        assert err.command_args == ("czf", "/b/var.tgz")

    def test_message_without_stderr(self):
        err = HostCommandError("false", (), 1)
        assert "exit status 1" in str(err)


class TestRun:
    @pytest.mark.asyncio
    async def test_run_builds_argv_spec(self, ops):
        await ops.run("cp", "/a", "/b")
        spec = ops.calls[0]
        assert spec.program == "cp"
        assert spec.args == ("/a", "/b")
        assert spec.shell is False

    @pytest.mark.asyncio
    async def test_run_shell_builds_shell_spec(self, ops):
        await ops.run_shell("crictl ps -q | wc -l")
        spec = ops.calls[0]
        assert spec.shell is True
        assert spec.program == "crictl ps -q | wc -l"
        assert spec.args == ()


class TestSystemctl:
    @pytest.mark.asyncio
    async def test_is_active_tolerates_inactive(self, ops):
        ops.respond_to("is-active", "inactive\n")
        assert await ops.systemctl("is-active", "crio.service") == "inactive"
        assert SYSTEMCTL_INACTIVE in ops.calls[0].ok_codes

    @pytest.mark.asyncio
    async def test_is_enabled_tolerates_disabled(self, ops):
        ops.respond_to("is-enabled", "disabled\n")
        assert await ops.systemctl("is-enabled", "kubelet.service") == "disabled"
        assert ops.calls[0].ok_codes == (0, SYSTEMCTL_NOT_ENABLED)

    @pytest.mark.asyncio
    async def test_other_actions_strict(self, ops):
        await ops.systemctl("stop", "kubelet.service")
        spec = ops.calls[0]
        assert spec.display() == "systemctl stop kubelet.service"
        assert spec.ok_codes == (0,)


class TestMergedEnv:
    def test_empty(self):
        assert merged_env({}) is None

    def test_extends_process_env(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        env = merged_env({"RPMOSTREE_CLIENT_ID": "ibu-imager"})
        assert env["RPMOSTREE_CLIENT_ID"] == "ibu-imager"
        assert env["PATH"] == "/usr/bin"
