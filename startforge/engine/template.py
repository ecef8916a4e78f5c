"""Jinja2 rendering of integration asset files.

Every integration file whose path ends in ``.j2`` is rendered through a
shared Jinja2 environment with a per-file context (some helpers are relative
to the file being rendered).  Other files pass through untouched.  After
rendering, the output path is normalised: the ``.j2`` suffix is dropped,
``_dot_`` markers become dots, ``__option__`` prefixes are removed, a trailing
``.append`` turns the file into an append contribution, and JavaScript
projects get ``.js``/``.jsx`` extensions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from jinja2 import Environment, select_autoescape

from .models import CompileOptions, Hook, Route, RouterMode
from .paths import convert_dot_files, relative_path, strip_option_prefix

TEMPLATE_EXTENSION = ".j2"
APPEND_EXTENSION = ".append"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SkipFile(Exception):
    """Raised by ``ignore_file()`` inside a template to drop the file."""


class TemplateRenderError(Exception):
    """Raised when an integration file fails to render."""

    def __init__(self, file_path: str, cause: Exception, integration_id: str | None = None) -> None:
        self.file_path = file_path
        self.integration_id = integration_id
        self.cause = cause
        where = f"{file_path} (integration {integration_id})" if integration_id else file_path
        super().__init__(f"Template error in file {where}: {cause}")


# ---------------------------------------------------------------------------
# Jinja2 environment
# ---------------------------------------------------------------------------


def pascal_case(value: str) -> str:
    """Convert ``some-thing``, ``some_thing`` or ``some.thing`` to ``SomeThing``."""
    parts = re.split(r"[-_./\s]+", value)
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def camel_case(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = pascal_case(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def create_environment() -> Environment:
    """Build the Jinja2 environment used for every integration file."""
    env = Environment(
        autoescape=select_autoescape([], default_for_string=False),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["pascal_case"] = pascal_case
    env.filters["camel_case"] = camel_case
    return env


_ENV = create_environment()


# ---------------------------------------------------------------------------
# Template context
# ---------------------------------------------------------------------------


def package_manager_add_script(package_manager: str, package: str, is_dev: bool = False) -> str:
    """Return the command that adds *package* with the given package manager."""
    if package_manager == "yarn":
        return f"yarn add {'-D ' if is_dev else ''}{package}"
    if package_manager == "pnpm":
        return f"pnpm add {'-D ' if is_dev else ''}{package}"
    if package_manager == "bun":
        return f"bun add {'-d ' if is_dev else ''}{package}"
    if package_manager == "deno":
        return f"deno add {package}"
    return f"npm install {'-D ' if is_dev else ''}{package}"


def package_manager_run_script(
    package_manager: str, script: str, args: list[str] | None = None
) -> str:
    """Return the command that runs a package.json *script*."""
    suffix = " " + " ".join(args) if args else ""
    if package_manager == "yarn":
        return f"yarn {script}{suffix}"
    if package_manager == "pnpm":
        return f"pnpm {script}{suffix}"
    if package_manager == "bun":
        return f"bun run {script}{suffix}"
    if package_manager == "deno":
        return f"deno task {script}{suffix}"
    return f"npm run {script}{suffix}"


def resolve_integration_options(options: CompileOptions) -> dict[str, dict[str, Any]]:
    """Merge declared option defaults with the caller's chosen values.

    Caller values win.  Ids that only appear in the caller's map are kept
    as-is so presets can carry options for integrations resolved later.
    """
    resolved: dict[str, dict[str, Any]] = {
        key: dict(values) for key, values in options.integration_options.items()
    }
    for integration in options.chosen_integrations:
        defaults = {
            name: option.default for name, option in (integration.options or {}).items()
        }
        resolved[integration.id] = {**defaults, **resolved.get(integration.id, {})}
    return resolved


def _ignore_file() -> None:
    raise SkipFile()


def create_template_context(options: CompileOptions, current_file: str) -> dict[str, Any]:
    """Build the variables and helpers visible to one template.

    Args:
        options: The compile being performed.
        current_file: Virtual path of the file being rendered; path helpers
            are relative to it.

    Returns:
        A dict suitable for ``Template.render(**context)``.
    """
    hooks: list[Hook] = []
    routes: list[Route] = []
    for integration in options.chosen_integrations:
        hooks.extend(integration.hooks or [])
        routes.extend(integration.routes or [])

    def local_relative_path(to: str, strip_ext: bool = False) -> str:
        return relative_path(current_file, to, strip_ext)

    def hook_import_content(hook: Hook) -> str:
        if hook.import_:
            return hook.import_
        return f"import {hook.js_name} from '{local_relative_path(hook.path or '')}'"

    def hook_import_code(hook: Hook) -> str:
        return hook.code or hook.js_name or ""

    pm = options.package_manager

    return {
        "package_manager": pm,
        "project_name": options.project_name,
        "typescript": options.typescript,
        "tailwind": options.tailwind,
        "js": "ts" if options.typescript else "js",
        "jsx": "tsx" if options.typescript else "jsx",
        "file_router": options.mode == RouterMode.FILE_ROUTER,
        "code_router": options.mode == RouterMode.CODE_ROUTER,
        "integration_enabled": {i.id: True for i in options.chosen_integrations},
        "integration_option": resolve_integration_options(options),
        "integrations": options.chosen_integrations,
        "hooks": hooks,
        "routes": routes,
        "get_package_manager_add_script": (
            lambda package, is_dev=False: package_manager_add_script(pm, package, is_dev)
        ),
        "get_package_manager_run_script": (
            lambda script, args=None: package_manager_run_script(pm, script, args)
        ),
        "relative_path": local_relative_path,
        "hook_import_content": hook_import_content,
        "hook_import_code": hook_import_code,
        "ignore_file": _ignore_file,
    }


# ---------------------------------------------------------------------------
# Single-file processing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProcessedFile:
    """One integration file after rendering and path normalisation."""

    path: str
    content: str
    append: bool = False


def render_template(content: str, context: dict[str, Any]) -> str:
    """Render *content* as a Jinja2 template. ``SkipFile`` propagates."""
    return _ENV.from_string(content).render(**context)


def output_path_for(file_path: str, typescript: bool = True) -> tuple[str, bool]:
    """Map a virtual asset path to ``(output_path, is_append)``."""
    path = file_path
    if path.endswith(TEMPLATE_EXTENSION):
        path = path[: -len(TEMPLATE_EXTENSION)]
    path = convert_dot_files(path)
    path = strip_option_prefix(path)

    append = path.endswith(APPEND_EXTENSION)
    if append:
        path = path[: -len(APPEND_EXTENSION)]

    if not typescript:
        path = re.sub(r"\.tsx$", ".jsx", path)
        path = re.sub(r"\.ts$", ".js", path)
    return path, append


def process_template_file(
    file_path: str,
    content: str,
    options: CompileOptions,
    integration_id: Optional[str] = None,
) -> Optional[ProcessedFile]:
    """Render one integration file and compute where it lands.

    Args:
        file_path: Virtual asset path, e.g. ``src/routes/demo/__x__page.tsx.j2``.
        content: Raw file text.
        options: The compile being performed.
        integration_id: Owning integration, used only in error messages.

    Returns:
        The processed file, or ``None`` when the template called
        ``ignore_file()``.

    Raises:
        TemplateRenderError: Any other failure while rendering.
    """
    rendered = content
    if file_path.endswith(TEMPLATE_EXTENSION):
        context = create_template_context(options, file_path)
        try:
            rendered = render_template(content, context)
        except SkipFile:
            return None
        except Exception as exc:  # noqa: BLE001
            raise TemplateRenderError(file_path, exc, integration_id) from exc

    path, append = output_path_for(file_path, options.typescript)
    return ProcessedFile(path=path, content=rendered, append=append)
