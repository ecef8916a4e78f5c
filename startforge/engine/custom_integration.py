"""Turn a modified project into a reusable custom integration.

``init_integration`` recompiles the project's original tree from its
``.startforge.json``, diffs the project against it and stores every new or
changed file under ``.integration/assets``.  Route files are rewritten as
``.j2`` templates that work in both router modes.  ``package.json`` changes
become ``packageAdditions``.  ``compile_integration`` then bundles
``.integration/info.json`` and the assets into ``integration.json``.
"""

from __future__ import annotations

import json
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from ..writer import write_project
from .compile import compile
from .models import Integration, IntegrationInfo, PackageAdditions, PersistedOptions, Route, RouterMode
from .shared import (
    ProjectConfigError,
    changed_project_files,
    compile_options_from_persisted,
    create_package_additions,
    gather_project_files,
    read_current_project_options,
)
from .template import TEMPLATE_EXTENSION, pascal_case

if TYPE_CHECKING:
    from ..registry.fetch import IntegrationRegistry

INTEGRATION_DIR = ".integration"
INFO_FILE = f"{INTEGRATION_DIR}/info.json"
ASSETS_DIR = f"{INTEGRATION_DIR}/assets"
COMPILED_FILE = "integration.json"

# Entry points and generated files that never belong in an integration.
SKIPPED_ASSETS = frozenset({"main.jsx", "App.jsx", "main.tsx", "App.tsx", "routeTree.gen.ts"})

_FILE_ROUTE_IMPORT = re.compile(r"import \{ createFileRoute \} from ['\"]@tanstack/react-router['\"]")
_ROUTE_DECLARATION = re.compile(
    r"export\s+const\s+Route\s*=\s*createFileRoute\(['\"]([^'\"]+)['\"]\)\s*\(\{([^}]+)\}\)"
)
_ROUTER_IMPORT = (
    "import { {% if file_router %}createFileRoute{% else %}createRoute{% endif %} }"
    " from '@tanstack/react-router'"
)
_JINJA_OPENER = re.compile(r"\{(?=[{%#])")


@dataclass
class TemplatizedRoute:
    code: str
    url: Optional[str] = None
    name: str = ""
    js_name: str = ""


@dataclass
class IntegrationBuild:
    """Result of ``init_integration``."""

    integration: Integration
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Route templating
# ---------------------------------------------------------------------------


def _escape(text: str) -> str:
    """Neutralise Jinja delimiters (JSX ``{{ }}`` props) in literal code."""
    return _JINJA_OPENER.sub("{{ '{' }}", text)


def _swap_router_import(text: str) -> str:
    return _ROUTER_IMPORT.join(_escape(part) for part in _FILE_ROUTE_IMPORT.split(text))


def templatize_route(code: str) -> TemplatizedRoute:
    """Rewrite a file-router route module as a template for both router modes.

    File-router output keeps the original declaration.  Code-router output
    replaces it with a ``createRoute`` factory taking the parent route.  A
    module without a ``createFileRoute`` declaration only gets its import
    rewritten and has no ``url``.
    """
    match = _ROUTE_DECLARATION.search(code)
    if match is None:
        return TemplatizedRoute(code=_swap_router_import(code))

    url = match.group(1)
    definition = match.group(2).strip().rstrip(",")
    declaration = (
        "{% if code_router %}\n"
        "import type { RootRoute } from '@tanstack/react-router'"
        "{% else %}\n"
        f"{_escape(match.group(0))}"
        "{% endif %}"
    )
    factory = (
        "{% if code_router %}\n"
        "\n"
        "export default (parentRoute: RootRoute) => createRoute({\n"
        f"  path: '{url}',\n"
        f"  {_escape(definition)},\n"
        "  getParentRoute: () => parentRoute,\n"
        "})\n"
        "{% endif %}\n"
    )
    templated = (
        _swap_router_import(code[: match.start()])
        + declaration
        + _swap_router_import(code[match.end():])
        + factory
    )

    base = posixpath.basename(url)
    name = re.sub(r"^demo", "", base.replace(".tsx", "")).replace(".", " ", 1).strip()
    return TemplatizedRoute(code=templated, url=url, name=name, js_name=pascal_case(base))


# ---------------------------------------------------------------------------
# info.json
# ---------------------------------------------------------------------------


def validate_integration_setup(persisted: PersistedOptions, target_dir: str | Path) -> None:
    """Integrations are authored from TypeScript + Tailwind file-router projects."""
    if persisted.mode == RouterMode.CODE_ROUTER.value:
        raise ProjectConfigError(
            target_dir,
            "This project is using code-router mode.\n"
            "To create an integration, the project must use file-router mode.",
        )
    if not persisted.tailwind:
        raise ProjectConfigError(
            target_dir,
            "This project is not using Tailwind CSS.\n"
            "To create an integration, the project must be created with Tailwind CSS.",
        )
    if not persisted.typescript:
        raise ProjectConfigError(
            target_dir,
            "This project is not using TypeScript.\n"
            "To create an integration, the project must be created with TypeScript.",
        )


def default_integration_info(persisted: PersistedOptions) -> IntegrationInfo:
    name = persisted.project_name
    return IntegrationInfo(
        id=f"{name}-integration",
        name=f"{name} Integration",
        description="Custom integration",
        author="Author <author@example.com>",
        version="0.0.1",
        license="MIT",
        link=f"https://github.com/example/{name}-integration",
        type="integration",
        phase="integration",
        modes=[persisted.mode],
        requires_tailwind=persisted.tailwind or None,
        depends_on=list(persisted.chosen_integrations) or None,
        routes=[],
        package_additions=PackageAdditions(),
    )


def read_or_generate_integration_info(
    persisted: PersistedOptions, target_dir: str | Path
) -> IntegrationInfo:
    info_path = Path(target_dir) / INFO_FILE
    if not info_path.is_file():
        return default_integration_info(persisted)
    try:
        return IntegrationInfo.model_validate_json(info_path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ProjectConfigError(target_dir, f"Invalid {INFO_FILE} in {target_dir}: {exc}") from exc


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


def build_assets(changed: dict[str, str], info: IntegrationInfo) -> tuple[dict[str, str], list[str]]:
    """Map changed project files to asset files, registering new routes on *info*.

    Returns the assets and a warning for every route file without a route
    declaration.
    """
    assets: dict[str, str] = {}
    warnings: list[str] = []
    routes = info.routes if info.routes is not None else []

    for path, content in changed.items():
        if posixpath.basename(path) in SKIPPED_ASSETS:
            continue
        if "/routes/" not in path:
            assets[path] = content
            continue

        route = templatize_route(content)
        assets[path + TEMPLATE_EXTENSION] = route.code
        if route.url is None:
            warnings.append(f"No route found in the file: {path}")
        elif not any(existing.url == route.url for existing in routes):
            routes.append(Route(url=route.url, name=route.name, js_name=route.js_name, path=path))

    info.routes = routes
    return assets, warnings


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compile_integration(target_dir: str | Path) -> Integration:
    """Bundle ``.integration/info.json`` and its assets into ``integration.json``.

    Raises:
        ProjectConfigError: The project has no ``.startforge.json`` or its
            ``info.json`` is invalid.
    """
    persisted = read_current_project_options(target_dir)
    info = read_or_generate_integration_info(persisted, target_dir)

    data = info.model_dump()
    data["id"] = info.id or f"{persisted.project_name}-integration"
    data["files"] = gather_project_files(Path(target_dir) / ASSETS_DIR)
    data["deleted_files"] = []
    integration = Integration.model_validate(data)

    (Path(target_dir) / COMPILED_FILE).write_text(
        json.dumps(integration.to_json_dict(), indent=2), encoding="utf-8"
    )
    return integration


async def init_integration(target_dir: str | Path, registry: IntegrationRegistry) -> IntegrationBuild:
    """Extract a custom integration from the modified project in *target_dir*.

    Existing ``.integration/assets`` are kept as they are; delete the
    directory to re-extract them.

    Raises:
        ProjectConfigError: No ``.startforge.json``, or the project is not a
            TypeScript + Tailwind file-router project.
        RegistryError: The project's integrations could not be refetched.
    """
    target = Path(target_dir)
    persisted = read_current_project_options(target)
    validate_integration_setup(persisted, target)

    info = read_or_generate_integration_info(persisted, target)
    options = await compile_options_from_persisted(persisted, registry)
    original = compile(options).files

    current_package_json = json.loads((target / "package.json").read_text(encoding="utf-8"))
    info.package_additions = create_package_additions(
        json.loads(original["package.json"]), current_package_json
    )

    warnings: list[str] = []
    assets_dir = target / ASSETS_DIR
    if not assets_dir.exists():
        assets, warnings = build_assets(changed_project_files(target, original), info)
        await write_project(assets, assets_dir)

    (target / INFO_FILE).parent.mkdir(parents=True, exist_ok=True)
    (target / INFO_FILE).write_text(json.dumps(info.to_json_dict(), indent=2), encoding="utf-8")

    return IntegrationBuild(integration=compile_integration(target), warnings=warnings)
