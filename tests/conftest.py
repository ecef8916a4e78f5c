"""Shared pytest fixtures for the startforge test suite.

Provides reusable fixtures for:
- Integration descriptors built from minimal keyword overrides
- Compile options
- An on-disk integration registry laid out under tmp_path
- Mocked httpx clients
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from startforge.engine.models import CompileOptions, Integration


# ---------------------------------------------------------------------------
# Integrations & options
# ---------------------------------------------------------------------------


def build_integration(integration_id: str, **overrides: Any) -> Integration:
    """Return a valid ``Integration`` with sensible defaults for tests."""
    data: dict[str, Any] = {
        "id": integration_id,
        "name": integration_id.replace("-", " ").title(),
        "description": f"The {integration_id} integration",
        "type": "integration",
        "phase": "integration",
        "modes": ["file-router"],
        "files": {},
    }
    data.update(overrides)
    return Integration.model_validate(data)


@pytest.fixture
def make_integration() -> Callable[..., Integration]:
    """Factory fixture: ``make_integration("clerk", phase="setup", ...)``."""
    return build_integration


@pytest.fixture
def make_options() -> Callable[..., CompileOptions]:
    """Factory fixture for ``CompileOptions`` with a default project name."""

    def _make(**overrides: Any) -> CompileOptions:
        overrides.setdefault("project_name", "my-app")
        return CompileOptions(**overrides)

    return _make


@pytest.fixture
def base_options() -> CompileOptions:
    """Plain TypeScript + Tailwind file-router project, no integrations."""
    return CompileOptions(project_name="my-app")


# ---------------------------------------------------------------------------
# Local registry
# ---------------------------------------------------------------------------


SAMPLE_MANIFEST: dict[str, Any] = {
    "version": "1.0.0",
    "generated": "2025-01-01T00:00:00Z",
    "integrations": [
        {
            "id": "tanstack-query",
            "name": "TanStack Query",
            "description": "Async state management",
            "type": "integration",
            "category": "tanstack",
            "modes": ["file-router", "code-router"],
        },
        {
            "id": "clerk",
            "name": "Clerk",
            "description": "Authentication",
            "type": "integration",
            "category": "auth",
            "modes": ["file-router"],
            "dependsOn": ["tanstack-query"],
        },
    ],
}

SAMPLE_INFOS: dict[str, dict[str, Any]] = {
    "tanstack-query": {
        "name": "TanStack Query",
        "description": "Async state management",
        "type": "integration",
        "phase": "integration",
        "modes": ["file-router", "code-router"],
        "priority": 10,
        "hooks": [
            {
                "type": "root-provider",
                "jsName": "QueryProvider",
                "path": "src/integrations/tanstack-query/provider.tsx",
            }
        ],
        "packageAdditions": {"dependencies": {"@tanstack/react-query": "^5.0.0"}},
    },
    "clerk": {
        "name": "Clerk",
        "description": "Authentication",
        "type": "integration",
        "phase": "integration",
        "modes": ["file-router"],
        "envVars": [
            {"name": "VITE_CLERK_PUBLISHABLE_KEY", "description": "Clerk key", "required": True}
        ],
    },
}


def write_registry(root: Path) -> Path:
    """Lay out a two-integration registry under *root* and return it."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "manifest.json").write_text(json.dumps(SAMPLE_MANIFEST), encoding="utf-8")

    for integration_id, info in SAMPLE_INFOS.items():
        integration_dir = root / integration_id
        (integration_dir / "assets").mkdir(parents=True)
        (integration_dir / "info.json").write_text(json.dumps(info), encoding="utf-8")

    query_assets = root / "tanstack-query" / "assets"
    (query_assets / "src" / "integrations" / "tanstack-query").mkdir(parents=True)
    (query_assets / "src" / "integrations" / "tanstack-query" / "provider.tsx").write_text(
        "export default function QueryProvider() {}\n", encoding="utf-8"
    )
    (query_assets / "logo.png").write_bytes(b"\x89PNG\r\n")

    clerk_dir = root / "clerk"
    (clerk_dir / "package.json").write_text(
        json.dumps({"dependencies": {"@clerk/clerk-react": "^5.0.0"}}), encoding="utf-8"
    )
    (clerk_dir / "assets" / "src").mkdir(parents=True)
    (clerk_dir / "assets" / "src" / "clerk.ts.j2").write_text(
        "export const name = '{{ project_name }}'\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def local_registry(tmp_path: Path) -> Path:
    """A populated registry directory under tmp_path."""
    return write_registry(tmp_path / "integrations")


# ---------------------------------------------------------------------------
# httpx mocking
# ---------------------------------------------------------------------------


def build_response(
    status_code: int = 200, json_data: Any = None, text: str = "", content: bytes = b""
) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    response.content = content
    return response


@pytest.fixture
def mock_http_client() -> MagicMock:
    """An ``httpx.AsyncClient`` stand-in usable as an async context manager."""
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.get = AsyncMock(return_value=build_response(404))
    return client


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory fixture for fake ``httpx.Response`` objects."""
    return build_response
