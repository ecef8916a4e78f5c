"""The compilation engine.

Merges the base files with every chosen integration's files, hooks, package
additions and environment variables into one project tree.  Integrations are
applied in ``(phase, priority)`` order; a later integration writing the same
path silently replaces the earlier file, while ``.append`` contributions are
concatenated onto whatever ends up at that path.

``compile`` returns the file tree only.  ``compile_with_attribution`` runs
the identical merge and additionally reports, for every line of every file,
which integration (or ``"base"``) is responsible for it.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from .base import LineOwner, TaggedLines, find_hook_owner, get_base_files_with_attribution
from .models import (
    BASE_ID,
    BASE_NAME,
    AttributedCompileOutput,
    AttributedFile,
    CompileOptions,
    CompileOutput,
    EnvVar,
    Integration,
    LineAttribution,
    PackageAdditions,
)
from .template import process_template_file

PHASE_ORDER: dict[str, int] = {"setup": 0, "integration": 1, "example": 2}
DEFAULT_PRIORITY = 100

# Heuristic: any `"key": "value"` line. Values containing `": "` can fool it.
_PACKAGE_LINE = re.compile(r'^\s*"([^"]+)":\s*"[^"]+"')


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def integration_sort_key(integration: Integration) -> tuple[int, int]:
    priority = DEFAULT_PRIORITY if integration.priority is None else integration.priority
    return PHASE_ORDER[integration.phase], priority


def sort_integrations(integrations: Iterable[Integration]) -> list[Integration]:
    """Stable sort by phase then priority; ties keep their input order."""
    return sorted(integrations, key=integration_sort_key)


# ---------------------------------------------------------------------------
# package.json
# ---------------------------------------------------------------------------


def build_package_json(options: CompileOptions, packages: PackageAdditions) -> str:
    """Render ``package.json`` from the fixed baseline plus merged additions."""
    has_header = bool(options.chosen_integrations) and options.tailwind

    dependencies: dict[str, str] = {
        "@tanstack/react-router": "^1.132.0",
        "@tanstack/react-router-devtools": "^1.132.0",
        "@tanstack/react-start": "^1.132.0",
        "react": "^19.0.0",
        "react-dom": "^19.0.0",
        "vite-tsconfig-paths": "^5.1.4",
    }
    if has_header:
        dependencies["lucide-react"] = "^0.468.0"
    dependencies.update(packages.dependencies)

    dev_dependencies: dict[str, str] = {
        "@vitejs/plugin-react": "^4.4.1",
        "vite": "^7.0.0",
    }
    if options.typescript:
        dev_dependencies.update({
            "@types/react": "^19.0.0",
            "@types/react-dom": "^19.0.0",
            "typescript": "^5.7.0",
        })
    if options.tailwind:
        dev_dependencies.update({
            "@tailwindcss/vite": "^4.0.0",
            "tailwindcss": "^4.0.0",
        })
    dev_dependencies.update(packages.dev_dependencies)

    pkg: dict[str, Any] = {
        "name": options.project_name,
        "private": True,
        "type": "module",
        "scripts": {
            "dev": "vite dev --port 3000",
            "build": "vite build",
            "start": "node .output/server/index.mjs",
            **packages.scripts,
        },
        "dependencies": dependencies,
        "devDependencies": dev_dependencies,
    }
    return json.dumps(pkg, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Merge state
# ---------------------------------------------------------------------------


@dataclass
class _FileEntry:
    content: str
    integration_id: str


@dataclass
class _MergeState:
    """Accumulators threaded through one compile call."""

    files: dict[str, _FileEntry] = field(default_factory=dict)
    append_files: dict[str, list[_FileEntry]] = field(default_factory=dict)
    append_owners: dict[str, dict[int, str]] = field(default_factory=dict)
    hook_owners: dict[str, list[LineOwner]] = field(default_factory=dict)
    packages: PackageAdditions = field(default_factory=PackageAdditions)
    dependency_owners: dict[str, str] = field(default_factory=dict)
    dev_dependency_owners: dict[str, str] = field(default_factory=dict)
    script_owners: dict[str, str] = field(default_factory=dict)
    env_vars: list[tuple[EnvVar, str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def merge_packages(self, additions: PackageAdditions | None, integration_id: str) -> None:
        if additions is None:
            return
        for name in additions.dependencies:
            self.dependency_owners[name] = integration_id
        for name in additions.dev_dependencies:
            self.dev_dependency_owners[name] = integration_id
        for name in additions.scripts:
            self.script_owners[name] = integration_id
        self.packages.dependencies.update(additions.dependencies)
        self.packages.dev_dependencies.update(additions.dev_dependencies)
        self.packages.scripts.update(additions.scripts)

    def package_owner(self, key: str) -> str:
        return (
            self.dependency_owners.get(key)
            or self.dev_dependency_owners.get(key)
            or self.script_owners.get(key)
            or BASE_ID
        )

    def unique_env_vars(self) -> list[tuple[EnvVar, str]]:
        seen: set[str] = set()
        unique: list[tuple[EnvVar, str]] = []
        for env_var, owner in self.env_vars:
            if env_var.name in seen:
                continue
            seen.add(env_var.name)
            unique.append((env_var, owner))
        return unique


def _apply_integration(state: _MergeState, integration: Integration, options: CompileOptions) -> None:
    for file_path, content in integration.files.items():
        processed = process_template_file(file_path, content, options, integration.id)
        if processed is None:
            continue
        entry = _FileEntry(processed.content, integration.id)
        if processed.append:
            state.append_files.setdefault(processed.path, []).append(entry)
        else:
            state.files[processed.path] = entry

    state.merge_packages(integration.package_additions, integration.id)

    for env_var in integration.env_vars or []:
        state.env_vars.append((env_var, integration.id))

    if integration.warning:
        state.warnings.append(f"{integration.name}: {integration.warning}")


def _apply_appends(state: _MergeState) -> None:
    for path, appends in state.append_files.items():
        existing = state.files.get(path)
        if existing is None:
            next_line = 1
            existing = _FileEntry("\n".join(a.content for a in appends), appends[0].integration_id)
            state.files[path] = existing
        else:
            next_line = len(existing.content.split("\n")) + 1
            existing.content = existing.content + "\n" + "\n".join(a.content for a in appends)

        owners: dict[int, str] = {}
        for append in appends:
            count = len(append.content.split("\n"))
            for line in range(next_line, next_line + count):
                owners[line] = append.integration_id
            next_line += count
        state.append_owners[path] = owners


def _merge(options: CompileOptions) -> _MergeState:
    state = _MergeState()

    base = get_base_files_with_attribution(options)
    for path, content in base.files.items():
        state.files[path] = _FileEntry(content, BASE_ID)
    state.hook_owners.update(base.attributions)

    for integration in sort_integrations(options.chosen_integrations):
        _apply_integration(state, integration, options)

    _apply_appends(state)
    return state


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compile(options: CompileOptions) -> CompileOutput:  # noqa: A001
    """Compile *options* into a complete project file tree.

    Raises:
        TemplateRenderError: An integration file failed to render.
    """
    state = _merge(options)

    files = {path: entry.content for path, entry in state.files.items()}
    files["package.json"] = build_package_json(options, state.packages)

    return CompileOutput(
        files=files,
        packages=state.packages,
        env_vars=[env_var for env_var, _ in state.unique_env_vars()],
        warnings=state.warnings,
    )


def _feature_names(options: CompileOptions) -> dict[str, str]:
    names = {BASE_ID: BASE_NAME}
    if options.custom_template is not None:
        names[options.custom_template.id] = options.custom_template.name
    for integration in options.chosen_integrations:
        names[integration.id] = integration.name
    return names


def _env_example(unique_env_vars: list[tuple[EnvVar, str]], names: dict[str, str]) -> TaggedLines:
    lines = TaggedLines()
    lines.add("# Environment Variables")
    lines.add("# Copy this file to .env.local and fill in your values")
    lines.blank()

    groups: dict[str, list[EnvVar]] = {}
    for env_var, owner in unique_env_vars:
        groups.setdefault(owner, []).append(env_var)

    for owner, env_vars in groups.items():
        lines.add(f"# {names.get(owner, owner)}", owner)
        for env_var in env_vars:
            required = " (required)" if env_var.required else ""
            lines.add(f"# {env_var.description}{required}", owner)
            lines.add(f"{env_var.name}={env_var.example or ''}", owner)
        lines.blank()
    return lines


def compile_with_attribution(options: CompileOptions) -> AttributedCompileOutput:
    """Compile *options* and attribute every output line to its contributor.

    Per line, an appended region's owner wins, then a hook-injected line of
    the base file at that path, then the integration that last wrote the file.
    ``package.json`` lines are attributed by package/script name.  When any
    environment variables are declared, ``.env.example`` is replaced by a
    generated listing grouped by integration.
    """
    state = _merge(options)
    names = _feature_names(options)

    def attribution(line_number: int, owner: str) -> LineAttribution:
        return LineAttribution(
            line_number=line_number, feature_id=owner, feature_name=names.get(owner, owner)
        )

    files: dict[str, str] = {}
    attributed: dict[str, AttributedFile] = {}

    for path, entry in state.files.items():
        files[path] = entry.content
        append_owners = state.append_owners.get(path, {})
        hook_owners = state.hook_owners.get(path)

        attributions = []
        for line_number in range(1, len(entry.content.split("\n")) + 1):
            owner = (
                append_owners.get(line_number)
                or find_hook_owner(hook_owners, line_number)
                or entry.integration_id
            )
            attributions.append(attribution(line_number, owner))
        attributed[path] = AttributedFile(path=path, content=entry.content, attributions=attributions)

    package_json = build_package_json(options, state.packages)
    files["package.json"] = package_json
    package_attributions = []
    for line_number, line in enumerate(package_json.split("\n"), start=1):
        match = _PACKAGE_LINE.match(line)
        owner = state.package_owner(match.group(1)) if match else BASE_ID
        package_attributions.append(attribution(line_number, owner))
    attributed["package.json"] = AttributedFile(
        path="package.json", content=package_json, attributions=package_attributions
    )

    unique_env_vars = state.unique_env_vars()
    if unique_env_vars:
        env_lines = _env_example(unique_env_vars, names)
        content = env_lines.content()
        files[".env.example"] = content
        attributed[".env.example"] = AttributedFile(
            path=".env.example",
            content=content,
            attributions=[
                attribution(owner.line, owner.integration_id) for owner in env_lines.attributions()
            ],
        )

    return AttributedCompileOutput(
        files=files,
        packages=state.packages,
        env_vars=[env_var for env_var, _ in unique_env_vars],
        warnings=state.warnings,
        attributed_files=attributed,
    )
