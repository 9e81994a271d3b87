# tests/integration/ops/test_int_direct_ops.py — v1
"""Integration tests for DirectOps against real child processes."""

from __future__ import annotations

import shutil

import pytest

from ibuimager.ops.base_ops import HostCommandError

pytestmark = [
    pytest.mark.host,
    pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available"),
]


class TestDirectOps:
    @pytest.mark.asyncio
    async def test_stdout(self, direct_ops):
        assert await direct_ops.run("echo", "hello") == "hello\n"

    @pytest.mark.asyncio
    async def test_shell_pipeline(self, direct_ops):
        out = await direct_ops.run_shell("printf 'b\\na\\n' | sort")
        assert out == "a\nb\n"

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, direct_ops):
        with pytest.raises(HostCommandError) as info:
            await direct_ops.run_shell("echo oops >&2; exit 4")
        assert info.value.returncode == 4
        assert info.value.stderr == "oops"
        assert "oops" in str(info.value)

    @pytest.mark.asyncio
    async def test_accepted_exit_code(self, direct_ops):
        assert await direct_ops.run("bash", "-c", "exit 3", ok_codes=(0, 3)) == ""

    @pytest.mark.asyncio
    async def test_env_and_cwd(self, direct_ops, tmp_path):
        out = await direct_ops.run_shell(
            'echo "$RPMOSTREE_CLIENT_ID"; pwd -P',
            cwd=tmp_path,
            env={"RPMOSTREE_CLIENT_ID": "ibu-imager"},
        )
        client_id, cwd = out.splitlines()
        assert client_id == "ibu-imager"
        assert cwd == str(tmp_path.resolve())

    @pytest.mark.asyncio
    async def test_missing_program(self, direct_ops):
        with pytest.raises(HostCommandError) as info:
            await direct_ops.run("definitely-not-a-real-binary-ibu")
        assert info.value.returncode is None
