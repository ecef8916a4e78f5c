"""Write a compiled project tree to disk."""

from __future__ import annotations

import asyncio
import base64
from pathlib import Path

from startforge.registry.fetch import BINARY_PREFIX


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write text or decoded binary."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if content.startswith(BINARY_PREFIX):
        path.write_bytes(base64.b64decode(content[len(BINARY_PREFIX):]))
    else:
        path.write_text(content, encoding="utf-8")


async def write_project(files: dict[str, str], target_dir: str | Path) -> list[Path]:
    """Write every ``path -> content`` entry below *target_dir*.

    Contents carrying the ``base64:`` prefix are decoded to bytes first.

    Returns:
        The written paths, in input order.
    """
    root = Path(target_dir)
    written: list[Path] = []
    for relative, content in files.items():
        destination = root / relative
        await asyncio.to_thread(_write_file, destination, content)
        written.append(destination)
    return written
