"""Shared utility functions for startforge.

Provides async command execution, project-name validation,
package-manager detection and Rich-based console output.
"""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path

from rich.console import Console
from rich.table import Table

from startforge.engine.models import PackageManager

console = Console()

PROJECT_NAME_PATTERN = re.compile(r"^[a-z0-9-_]+$")

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 600,
    capture: bool = True,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams).

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.
    """
    pipe = asyncio.subprocess.PIPE if capture else None
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=pipe,
            stderr=pipe,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError:
        return (127, "", f"Command not found: {cmd[0]}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# Names & package managers
# ---------------------------------------------------------------------------


def validate_project_name(name: str) -> str | None:
    """Return an error message for an invalid project name, else ``None``.

    Valid names are lowercase letters, digits, hyphens and underscores.
    """
    if not name:
        return "Project name is required"
    if not PROJECT_NAME_PATTERN.match(name):
        return "Project name can only contain lowercase letters, numbers, hyphens, and underscores"
    return None


def detect_package_manager(user_agent: str | None = None) -> str:
    """Guess the invoking package manager from ``npm_config_user_agent``.

    Examples::

        detect_package_manager("pnpm/9.1.0 npm/? node/v20.11.0") -> "pnpm"
        detect_package_manager(None)                             -> "npm"
    """
    agent = user_agent if user_agent is not None else os.environ.get("npm_config_user_agent", "")
    for manager in (PackageManager.PNPM, PackageManager.YARN, PackageManager.BUN, PackageManager.DENO):
        if agent.startswith(manager.value):
            return manager.value
    return PackageManager.NPM.value


def install_command(package_manager: str) -> list[str]:
    return [package_manager, "install"]


def dev_command(package_manager: str) -> str:
    if package_manager == PackageManager.NPM.value:
        return "npm run dev"
    if package_manager == PackageManager.DENO.value:
        return "deno task dev"
    return f"{package_manager} dev"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
