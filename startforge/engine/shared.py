"""Helpers for re-deriving compile inputs from an existing project.

Also walks a project directory the way git would see it, honouring the
project's ``.gitignore`` plus a fixed list of generated or tool files.
"""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..registry.fetch import encode_binary, is_binary_file
from .config_file import CONFIG_FILE, read_config_file
from .models import CompileOptions, PackageAdditions, PersistedOptions

if TYPE_CHECKING:
    from ..registry.fetch import IntegrationRegistry


class ProjectConfigError(Exception):
    """Raised when a project has no usable ``.startforge.json``."""

    def __init__(self, target_dir: str | Path, message: str = "") -> None:
        self.target_dir = Path(target_dir)
        super().__init__(
            message
            or (
                f"No {CONFIG_FILE} file found in {target_dir}.\n"
                "This project may have been created with an older version of startforge, "
                "or was not created with startforge."
            )
        )


def _changed_entries(original: dict[str, Any], current: dict[str, Any]) -> dict[str, str]:
    return {
        key: value
        for key, value in current.items()
        if value and original.get(key) != value
    }


def create_package_additions(
    original_package_json: dict[str, Any],
    current_package_json: dict[str, Any],
) -> PackageAdditions:
    """Diff two ``package.json`` documents.

    Keeps every script, dependency and devDependency of *current* whose value
    is non-empty and differs from *original*.
    """
    return PackageAdditions(
        scripts=_changed_entries(
            original_package_json.get("scripts") or {},
            current_package_json.get("scripts") or {},
        ),
        dependencies=_changed_entries(
            original_package_json.get("dependencies") or {},
            current_package_json.get("dependencies") or {},
        ),
        dev_dependencies=_changed_entries(
            original_package_json.get("devDependencies") or {},
            current_package_json.get("devDependencies") or {},
        ),
    )


def read_current_project_options(target_dir: str | Path) -> PersistedOptions:
    """Like ``read_config_file`` but raise ``ProjectConfigError`` when absent."""
    persisted = read_config_file(target_dir)
    if persisted is None:
        raise ProjectConfigError(target_dir)
    return persisted


async def compile_options_from_persisted(
    persisted: PersistedOptions,
    registry: IntegrationRegistry,
) -> CompileOptions:
    """Rebuild ``CompileOptions`` by refetching the persisted integration ids."""
    chosen = []
    if persisted.chosen_integrations:
        chosen = await registry.fetch_integrations(persisted.chosen_integrations)

    return CompileOptions(
        project_name=persisted.project_name,
        framework=persisted.framework,
        mode=persisted.mode,
        typescript=persisted.typescript,
        tailwind=persisted.tailwind,
        package_manager=persisted.package_manager,
        chosen_integrations=chosen,
    )


# ---------------------------------------------------------------------------
# Project walk
# ---------------------------------------------------------------------------

ALWAYS_IGNORED = frozenset({
    ".git",
    ".integration",
    ".template",
    CONFIG_FILE,
    "build",
    "bun.lock",
    "bun.lockb",
    "deno.lock",
    "dist",
    "integration-info.json",
    "integration.json",
    "node_modules",
    "package-lock.json",
    "pnpm-lock.yaml",
    "template-info.json",
    "template.json",
    "yarn.lock",
})

PROJECT_FILES = frozenset({"package.json"})


@dataclass
class IgnoreRule:
    """One ``.gitignore`` pattern."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.anchored or "/" in self.pattern:
            return fnmatchcase(rel_path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def parse_gitignore(path: Path) -> list[IgnoreRule]:
    if not path.is_file():
        return []

    rules: list[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        directory_only = line.endswith("/")
        anchored = line.startswith("/")
        line = line.strip("/")
        if line:
            rules.append(IgnoreRule(line, directory_only, anchored, negate))
    return rules


def is_ignored(rel_path: str, is_dir: bool, rules: list[IgnoreRule]) -> bool:
    """Apply *rules* in order; the last matching rule decides."""
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def gather_project_files(root: str | Path, skip_project_files: bool = True) -> dict[str, str]:
    """Read every non-ignored file under *root*, keyed by ``/``-separated path.

    Binary files are returned as ``base64:`` strings, like registry assets.
    With *skip_project_files*, ``package.json`` files are left out too.
    """
    root = Path(root)
    files: dict[str, str] = {}
    if not root.is_dir():
        return files

    rules = parse_gitignore(root / ".gitignore")
    skipped = ALWAYS_IGNORED | PROJECT_FILES if skip_project_files else ALWAYS_IGNORED

    def walk(directory: Path) -> None:
        for entry in sorted(directory.iterdir()):
            if entry.name in skipped:
                continue
            rel_path = entry.relative_to(root).as_posix()
            is_dir = entry.is_dir()
            if is_ignored(rel_path, is_dir, rules):
                continue
            if is_dir:
                walk(entry)
            elif is_binary_file(rel_path):
                files[rel_path] = encode_binary(entry.read_bytes())
            else:
                files[rel_path] = entry.read_text(encoding="utf-8")

    walk(root)
    return files


def changed_project_files(root: str | Path, original: dict[str, str]) -> dict[str, str]:
    """Project files that are new or differ from the *original* compile output."""
    return {
        path: content
        for path, content in gather_project_files(root).items()
        if original.get(path) != content
    }
