"""Command-line interface for startforge.

Subcommands::

    startforge create my-app --integrations tanstack-query,clerk
    startforge list
    startforge preview my-app --integrations clerk --file vite.config.ts
    startforge template compile ./my-app
    startforge integration init ./my-app --integrations-path ./integrations
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.table import Table

from startforge.config import Config
from startforge.engine.compile import compile, compile_with_attribution
from startforge.engine.config_file import CONFIG_FILE, write_config_file
from startforge.engine import custom_integration
from startforge.engine.custom_template import COMPILED_FILE, compile_template, init_template
from startforge.engine.models import CompileOptions, CustomTemplate, RouterMode
from startforge.engine.shared import ProjectConfigError
from startforge.engine.template import TemplateRenderError
from startforge.registry.cache import FileCache
from startforge.registry.fetch import IntegrationRegistry, RegistryError, resolve_integration_ids
from startforge.utils import (
    console,
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
from startforge.writer import write_project


class CreateError(Exception):
    """Raised when ``create`` cannot proceed with the given arguments."""


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _split_ids(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _registry(args, config: Config) -> IntegrationRegistry:
    source = getattr(args, "integrations_path", None) or config.integrations_source
    if not source:
        raise CreateError(
            "No integration registry configured (use --integrations-path or "
            "set STARTFORGE_INTEGRATIONS_SOURCE)"
        )
    return IntegrationRegistry(
        source,
        cache=FileCache(config.cache_dir),
        ttl=config.cache_ttl,
        timeout=config.http_timeout,
    )


async def build_compile_options(args, registry: IntegrationRegistry) -> CompileOptions:
    """Resolve CLI flags (and an optional template) into ``CompileOptions``."""
    error = validate_project_name(args.name)
    if error:
        raise CreateError(error)

    requested = _split_ids(args.integrations)
    typescript = not args.javascript
    tailwind = not args.no_tailwind
    mode = RouterMode.CODE_ROUTER if args.code_router else RouterMode.FILE_ROUTER
    framework = "react"
    integration_options: dict = {}

    custom_template: Optional[CustomTemplate] = None
    if getattr(args, "template", None):
        custom_template = await registry.load_custom_template(args.template)
        requested = custom_template.integrations + [
            i for i in requested if i not in custom_template.integrations
        ]
        typescript = custom_template.typescript
        tailwind = custom_template.tailwind
        mode = custom_template.mode
        framework = custom_template.framework
        integration_options = dict(custom_template.integration_options or {})

    integration_ids: list[str] = []
    if requested:
        manifest = await registry.fetch_manifest()
        integration_ids = resolve_integration_ids(manifest, requested)

    return CompileOptions(
        project_name=args.name,
        framework=framework,
        mode=mode,
        typescript=typescript,
        tailwind=tailwind,
        package_manager=args.package_manager or detect_package_manager(),
        chosen_integrations=await registry.fetch_integrations(integration_ids),
        integration_options=integration_options,
        custom_template=custom_template,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_create(args, config: Config) -> int:
    registry = _registry(args, config)
    options = await build_compile_options(args, registry)

    target = Path(args.target_dir or options.project_name).resolve()
    if target.is_file():
        raise CreateError(f"{target} exists and is a file, not a directory")
    if target.exists() and any(target.iterdir()) and not args.force:
        raise CreateError(f"Directory {target} already exists and is not empty (use --force)")

    output = compile(options)
    written = await write_project(output.files, target)
    write_config_file(target, options)
    print_success(f"Created {options.project_name} ({len(written)} files) in {target}")

    if not args.no_git:
        code, _, stderr = await run_command(["git", "init"], cwd=target)
        if code != 0:
            print_warning(f"git init failed: {stderr}")

    pm = options.package_manager
    if not args.no_install:
        console.print(f"Installing dependencies with {pm}...")
        code, _, stderr = await run_command(install_command(pm), cwd=target, capture=False)
        if code != 0:
            print_warning(f"{pm} install failed: {stderr}")

    console.print()
    console.print("[bold]Next steps:[/bold]")
    console.print(f"  cd {target.name}")
    if args.no_install:
        console.print(f"  {' '.join(install_command(pm))}")
    console.print(f"  {dev_command(pm)}")

    required = [env_var for env_var in output.env_vars if env_var.required]
    if required:
        console.print()
        console.print("[bold]Required environment variables:[/bold]")
        for env_var in required:
            console.print(f"  {env_var.name} - {env_var.description}")

    for warning in output.warnings:
        print_warning(f"Warning: {warning}")
    return 0


async def cmd_list(args, config: Config) -> int:
    manifest = await _registry(args, config).fetch_manifest()
    table = Table(title="Integrations", show_header=True, header_style="bold cyan")
    table.add_column("Id", no_wrap=True)
    table.add_column("Name")
    table.add_column("Type", style="dim")
    table.add_column("Category", style="dim")
    table.add_column("Depends on", style="dim")
    for entry in manifest.integrations:
        table.add_row(
            entry.id,
            entry.name,
            entry.type,
            entry.category or "",
            ", ".join(entry.depends_on or []),
        )
    console.print(table)
    return 0


async def cmd_preview(args, config: Config) -> int:
    options = await build_compile_options(args, _registry(args, config))
    output = compile_with_attribution(options)

    if not args.file:
        owners_by_file: dict[str, str] = {}
        for path, attributed in sorted(output.attributed_files.items()):
            owners = sorted({a.feature_name for a in attributed.attributions})
            owners_by_file[path] = ", ".join(owners)
        print_summary_table(owners_by_file, title=f"{options.project_name} files")
        return 0

    attributed = output.attributed_files.get(args.file)
    if attributed is None:
        raise CreateError(f"{args.file} is not part of the compiled project")

    lines = attributed.content.split("\n")
    table = Table(title=args.file, show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Owner", style="cyan", no_wrap=True)
    table.add_column("Line")
    for attribution, text in zip(attributed.attributions, lines):
        table.add_row(str(attribution.line_number), attribution.feature_name, text)
    console.print(table)
    return 0


def cmd_template(args) -> int:
    if args.action == "init":
        template = init_template(args.directory)
    else:
        template = compile_template(args.directory)
    print_success(f"Compiled template written to {COMPILED_FILE}")
    included = ", ".join(template.integrations) if template.integrations else "(none)"
    console.print(f"Included integrations: {included}")
    return 0


async def cmd_integration(args, config: Config) -> int:
    if args.action == "init":
        build = await custom_integration.init_integration(args.directory, _registry(args, config))
        integration = build.integration
        for warning in build.warnings:
            print_warning(f"Warning: {warning}")
        print_success(f"Integration initialized in {custom_integration.INTEGRATION_DIR}/")
        console.print(f"  {custom_integration.INFO_FILE} - metadata (edit this to customize)")
        console.print(f"  {custom_integration.ASSETS_DIR}/ - asset files")
    else:
        integration = custom_integration.compile_integration(args.directory)
    print_success(f"Compiled integration written to {custom_integration.COMPILED_FILE}")
    console.print(f"Files: {len(integration.files)}")
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _add_project_arguments(parser) -> None:
    parser.add_argument("name", help="Project name (lowercase, digits, - and _)")
    parser.add_argument(
        "--integrations", "-i",
        default="",
        help="Comma-separated integration ids",
    )
    parser.add_argument(
        "--package-manager",
        choices=["npm", "pnpm", "yarn", "bun", "deno"],
        default=None,
        help="Package manager (default: detected from npm_config_user_agent)",
    )
    parser.add_argument("--no-tailwind", action="store_true", help="Skip Tailwind CSS")
    parser.add_argument("--javascript", action="store_true", help="Generate JavaScript instead of TypeScript")
    parser.add_argument("--code-router", action="store_true", help="Use code-based routing")
    parser.add_argument("--template", default=None, help="URL or path of a custom template.json")
    parser.add_argument(
        "--integrations-path",
        default=None,
        help="Local integrations directory or registry URL (overrides STARTFORGE_INTEGRATIONS_SOURCE)",
    )


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="startforge",
        description="startforge -- compile TanStack Start projects from integrations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  startforge create my-app --integrations tanstack-query\n"
            "  startforge list --integrations-path ./integrations\n"
            "  startforge preview my-app -i clerk --file src/routes/__root.tsx\n"
            "  startforge template compile ./my-app\n"
            "  startforge integration init ./my-app --integrations-path ./integrations\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a new project")
    _add_project_arguments(create)
    create.add_argument("--target-dir", default=None, help="Output directory (default: ./<name>)")
    create.add_argument("--no-git", action="store_true", help="Skip git init")
    create.add_argument("--no-install", action="store_true", help="Skip dependency installation")
    create.add_argument("--force", action="store_true", help="Write into a non-empty directory")

    list_parser = subparsers.add_parser("list", help="List available integrations")
    list_parser.add_argument("--integrations-path", default=None, help="Local integrations directory or registry URL")

    preview = subparsers.add_parser("preview", help="Show which integration owns each line")
    _add_project_arguments(preview)
    preview.add_argument("--file", default=None, help="Output file to show line by line")

    template = subparsers.add_parser("template", help=f"Build a custom template from a project's {CONFIG_FILE}")
    template.add_argument("action", choices=["init", "compile"])
    template.add_argument("directory", nargs="?", default=".", help="Project directory (default: .)")

    integration = subparsers.add_parser(
        "integration", help="Build a custom integration from a modified project"
    )
    integration.add_argument("action", choices=["init", "compile"])
    integration.add_argument("directory", nargs="?", default=".", help="Project directory (default: .)")
    integration.add_argument(
        "--integrations-path", default=None, help="Registry the project was created from"
    )

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``startforge`` / ``python -m startforge``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = Config.from_env()

    try:
        if args.command == "create":
            code = asyncio.run(cmd_create(args, config))
        elif args.command == "list":
            code = asyncio.run(cmd_list(args, config))
        elif args.command == "preview":
            code = asyncio.run(cmd_preview(args, config))
        elif args.command == "integration":
            code = asyncio.run(cmd_integration(args, config))
        else:
            code = cmd_template(args)
    except (CreateError, RegistryError, TemplateRenderError, ProjectConfigError) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
