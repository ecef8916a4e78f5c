"""Unit tests for utility functions (startforge.utils).

Tests cover:
- run_command (success, failure, missing binary, cwd, capture=False)
- validate_project_name
- detect_package_manager from npm_config_user_agent
- install_command / dev_command
- Rich output helpers
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from startforge.utils import (
    detect_package_manager,
    dev_command,
    install_command,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
    validate_project_name,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, _, _ = await run_command([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert returncode == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_binary(self):
        returncode, _, stderr = await run_command(["definitely-not-a-real-binary-xyz"])
        assert returncode == 127
        assert "Command not found" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cwd(self, tmp_path: Path):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_capture(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "pass"], capture=False
        )
        assert returncode == 0
        assert stdout == ""
        assert stderr == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2
        )
        assert returncode == -1
        assert "timed out" in stderr


# ---------------------------------------------------------------------------
# Names & package managers
# ---------------------------------------------------------------------------


class TestValidateProjectName:
    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["my-app", "app_2", "a"])
    def test_valid(self, name):
        assert validate_project_name(name) is None

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["My-App", "my app", "app!", "ünï"])
    def test_invalid(self, name):
        assert "lowercase" in validate_project_name(name)

    @pytest.mark.unit
    def test_empty(self):
        assert validate_project_name("") == "Project name is required"


class TestDetectPackageManager:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "agent,expected",
        [
            ("pnpm/9.1.0 npm/? node/v20.11.0 darwin arm64", "pnpm"),
            ("yarn/1.22.19 npm/? node/v20.11.0", "yarn"),
            ("bun/1.1.0 npm/? node/v21.0.0", "bun"),
            ("npm/10.2.4 node/v20.11.0", "npm"),
            ("", "npm"),
        ],
    )
    def test_from_user_agent(self, agent, expected):
        assert detect_package_manager(agent) == expected

    @pytest.mark.unit
    def test_from_environment(self):
        with patch.dict(os.environ, {"npm_config_user_agent": "pnpm/9.0.0"}):
            assert detect_package_manager() == "pnpm"


class TestCommands:
    @pytest.mark.unit
    def test_install_command(self):
        assert install_command("bun") == ["bun", "install"]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "pm,expected",
        [("npm", "npm run dev"), ("pnpm", "pnpm dev"), ("yarn", "yarn dev"), ("deno", "deno task dev")],
    )
    def test_dev_command(self, pm, expected):
        assert dev_command(pm) == expected


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestRichHelpers:
    @pytest.mark.unit
    def test_print_helpers_do_not_raise(self):
        print_success("Created my-app")
        print_error("Something failed")
        print_warning("Careful")

    @pytest.mark.unit
    def test_print_summary_table(self):
        print_summary_table({"vite.config.ts": "Base Template, Sentry"}, title="Files")
