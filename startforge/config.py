"""startforge runtime configuration.

Typed settings for the registry, cache and HTTP layers.  All settings use
Pydantic v2 models so they are validated at construction time and can be
loaded from JSON or environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Global startforge configuration.

    Created once by the CLI entry point (usually through ``from_env``) and
    handed to the registry and writer.
    """

    integrations_source: Optional[str] = Field(
        default=None,
        description="Local directory or base URL of a registry with .j2 assets",
    )
    cache_dir: Path = Field(default_factory=lambda: Path.home() / ".startforge" / "cache")
    cache_ttl: int = Field(default=3600, ge=0, description="Remote cache lifetime in seconds")
    http_timeout: int = Field(default=30, ge=1, description="Per-request timeout in seconds")

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STARTFORGE_INTEGRATIONS_SOURCE, STARTFORGE_CACHE_DIR,
            STARTFORGE_CACHE_TTL, STARTFORGE_HTTP_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STARTFORGE_INTEGRATIONS_SOURCE"):
            kwargs["integrations_source"] = os.environ["STARTFORGE_INTEGRATIONS_SOURCE"]
        if os.environ.get("STARTFORGE_CACHE_DIR"):
            kwargs["cache_dir"] = Path(os.environ["STARTFORGE_CACHE_DIR"])
        if os.environ.get("STARTFORGE_CACHE_TTL"):
            kwargs["cache_ttl"] = int(os.environ["STARTFORGE_CACHE_TTL"])
        if os.environ.get("STARTFORGE_HTTP_TIMEOUT"):
            kwargs["http_timeout"] = int(os.environ["STARTFORGE_HTTP_TIMEOUT"])
        return cls(**kwargs)
