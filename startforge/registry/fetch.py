"""Integration registry client.

Resolves integration ids into validated ``Integration`` descriptors from
either a local directory or a remote base URL.  A registry is laid out as::

    manifest.json
    <id>/info.json
    <id>/package.json        (optional, merged into packageAdditions)
    <id>/files.json          (remote only: list of asset paths)
    <id>/assets/**

Binary assets are returned as ``base64:<payload>`` strings.  Remote reads go
through an injectable ``Cache``; local reads are never cached.

Typical usage::

    registry = IntegrationRegistry("./integrations")
    manifest = await registry.fetch_manifest()
    integrations = await registry.fetch_integrations(["tanstack-query", "clerk"])
"""

from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from startforge.engine.models import (
    CustomTemplate,
    Integration,
    IntegrationInfo,
    Manifest,
    PackageAdditions,
)
from startforge.registry.cache import Cache, MemoryCache, cache_key

BINARY_PREFIX = "base64:"
DEFAULT_CACHE_TTL = 60 * 60

BINARY_EXTENSIONS = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico", ".svg",
    ".woff", ".woff2", ".ttf", ".eot", ".otf",
    ".pdf", ".zip", ".tar", ".gz",
    ".mp3", ".mp4", ".wav", ".ogg", ".webm",
})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RegistryError(Exception):
    """Raised when a descriptor cannot be fetched or fails validation."""

    def __init__(self, message: str, integration_id: str | None = None) -> None:
        self.integration_id = integration_id
        super().__init__(message)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_binary_file(file_path: str) -> bool:
    return Path(file_path).suffix.lower() in BINARY_EXTENSIONS


def is_local_path(source: str) -> bool:
    return source.startswith(("/", "./", "..")) or Path(source).is_dir()


def encode_binary(data: bytes) -> str:
    return BINARY_PREFIX + base64.b64encode(data).decode("ascii")


def read_assets(assets_dir: Path) -> dict[str, str]:
    """Read every file under *assets_dir*, keyed by ``/``-separated relative path."""
    files: dict[str, str] = {}
    if not assets_dir.is_dir():
        return files
    for path in sorted(assets_dir.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(assets_dir).as_posix()
        if is_binary_file(relative):
            files[relative] = encode_binary(path.read_bytes())
        else:
            files[relative] = path.read_text(encoding="utf-8")
    return files


def merge_package_json(
    additions: Optional[PackageAdditions], package_json: Optional[dict[str, Any]]
) -> Optional[PackageAdditions]:
    """Overlay an integration's ``package.json`` sections onto its additions."""
    merged = additions.model_copy(deep=True) if additions else PackageAdditions()
    if package_json:
        merged.dependencies.update(package_json.get("dependencies") or {})
        merged.dev_dependencies.update(package_json.get("devDependencies") or {})
        merged.scripts.update(package_json.get("scripts") or {})
    return None if merged.is_empty() else merged


def resolve_integration_ids(manifest: Manifest, requested: list[str]) -> list[str]:
    """Expand *requested* with transitive ``dependsOn`` entries.

    Dependencies are listed before the integrations that need them; each id
    appears once.

    Raises:
        RegistryError: An id is not present in the manifest.
    """
    resolved: list[str] = []
    visiting: set[str] = set()

    def visit(integration_id: str) -> None:
        if integration_id in resolved or integration_id in visiting:
            return
        entry = manifest.get(integration_id)
        if entry is None:
            raise RegistryError(f"Unknown integration: {integration_id}", integration_id)
        visiting.add(integration_id)
        for dependency in entry.depends_on or []:
            visit(dependency)
        visiting.discard(integration_id)
        resolved.append(integration_id)

    for integration_id in requested:
        visit(integration_id)
    return resolved


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class IntegrationRegistry:
    """Async client for a local or remote integration registry.

    Args:
        source: Local directory or base URL.
        cache: Cache used for remote reads. Defaults to an in-memory cache.
        ttl: Lifetime of cached remote reads, in seconds.
        timeout: Per-request HTTP timeout, in seconds.
    """

    def __init__(
        self,
        source: str,
        cache: Optional[Cache] = None,
        ttl: float = DEFAULT_CACHE_TTL,
        timeout: int = 30,
    ) -> None:
        self.local = is_local_path(source)
        self.source = source if self.local else source.rstrip("/")
        self.cache: Cache = cache if cache is not None else MemoryCache()
        self.ttl = ttl
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def _local(self, *parts: str) -> Path:
        return Path(self.source).joinpath(*parts)

    async def _get(self, client: httpx.AsyncClient, url: str) -> Optional[httpx.Response]:
        """GET *url*; ``None`` on 404, ``RegistryError`` on other failures."""
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise RegistryError(f"Failed to fetch {url}: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise RegistryError(f"Failed to fetch {url}: HTTP {response.status_code}")
        return response

    async def _get_json(self, url: str) -> Optional[Any]:
        async with self._client() as client:
            response = await self._get(client, url)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RegistryError(f"Invalid JSON at {url}: {exc}") from exc

    async def _cached(self, key: str, loader) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        data = await loader()
        if data is not None:
            self.cache.put(key, data, self.ttl)
        return data

    @staticmethod
    async def _read_local_json(path: Path) -> Optional[Any]:
        if not path.is_file():
            return None
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise RegistryError(f"Invalid JSON at {path}: {exc}") from exc

    @staticmethod
    def _validate(
        model: type[BaseModel],
        data: Any,
        what: str,
        integration_id: str | None = None,
    ) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise RegistryError(f"Invalid {what}: {exc}", integration_id) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_manifest(self) -> Manifest:
        """Fetch and validate ``manifest.json``."""
        if self.local:
            path = self._local("manifest.json")
            data = await self._read_local_json(path)
            if data is None:
                raise RegistryError(f"Manifest not found at {path}")
        else:
            url = f"{self.source}/manifest.json"
            data = await self._cached(cache_key("manifest", self.source), lambda: self._get_json(url))
            if data is None:
                raise RegistryError(f"Manifest not found at {url}")
        return self._validate(Manifest, data, "manifest")

    async def fetch_integration_info(self, integration_id: str) -> IntegrationInfo:
        """Fetch and validate ``<id>/info.json``."""
        if self.local:
            path = self._local(integration_id, "info.json")
            data = await self._read_local_json(path)
            location = str(path)
        else:
            location = f"{self.source}/{integration_id}/info.json"
            data = await self._cached(
                cache_key("integration_info", integration_id, self.source),
                lambda: self._get_json(location),
            )
        if data is None:
            raise RegistryError(
                f"Integration {integration_id} not found at {location}", integration_id
            )
        return self._validate(IntegrationInfo, data, f"integration {integration_id}", integration_id)

    async def fetch_integration_files(self, integration_id: str) -> dict[str, str]:
        """Fetch every asset of an integration, keyed by relative path."""
        if self.local:
            return await asyncio.to_thread(read_assets, self._local(integration_id, "assets"))

        return await self._cached(
            cache_key("integration_files", integration_id, self.source),
            lambda: self._fetch_remote_files(integration_id),
        )

    async def _fetch_remote_files(self, integration_id: str) -> dict[str, str]:
        base = f"{self.source}/{integration_id}"
        file_list = await self._get_json(f"{base}/files.json")
        if not file_list:
            return {}

        async with self._client() as client:

            async def fetch_one(file_path: str) -> Optional[tuple[str, str]]:
                response = await self._get(client, f"{base}/assets/{file_path}")
                if response is None:
                    return None
                if is_binary_file(file_path):
                    return file_path, encode_binary(response.content)
                return file_path, response.text

            results = await asyncio.gather(*(fetch_one(path) for path in file_list))

        return dict(result for result in results if result is not None)

    async def fetch_package_json(self, integration_id: str) -> Optional[dict[str, Any]]:
        """Return ``<id>/package.json`` if the integration ships one."""
        if self.local:
            return await self._read_local_json(self._local(integration_id, "package.json"))
        return await self._get_json(f"{self.source}/{integration_id}/package.json")

    async def fetch_integration(self, integration_id: str) -> Integration:
        """Fetch a complete integration: info, assets and package additions.

        Raises:
            RegistryError: The integration is missing or invalid.
        """
        info, files, package_json = await asyncio.gather(
            self.fetch_integration_info(integration_id),
            self.fetch_integration_files(integration_id),
            self.fetch_package_json(integration_id),
        )
        data = info.model_dump()
        data.update(
            id=integration_id,
            files=files,
            package_additions=merge_package_json(info.package_additions, package_json),
            deleted_files=[],
        )
        return self._validate(Integration, data, f"integration {integration_id}", integration_id)

    async def fetch_integrations(self, integration_ids: list[str]) -> list[Integration]:
        """Fetch several integrations concurrently, preserving order."""
        return list(await asyncio.gather(*(self.fetch_integration(i) for i in integration_ids)))

    async def load_custom_template(self, location: str) -> CustomTemplate:
        """Load a compiled custom template from a URL or a local file.

        A template without an ``id`` is identified by its location.
        """
        if location.startswith(("http://", "https://")):
            data = await self._get_json(location)
        else:
            data = await self._read_local_json(Path(location))
        if data is None:
            raise RegistryError(f"Template not found at {location}")
        if isinstance(data, dict) and not data.get("id"):
            data = {**data, "id": location}
        return self._validate(CustomTemplate, data, f"template at {location}")
