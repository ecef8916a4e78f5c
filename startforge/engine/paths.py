"""Virtual path helpers.

All paths handled here are ``/``-separated project-relative strings, never
real filesystem paths, and ``os.path`` is never used on them.
"""

from __future__ import annotations

import re

_DOT_MARKER = re.compile(r"^_dot_")
_OPTION_PREFIX = re.compile(r"^(.+/)?__([^_]+)__(.+)$")
_EXTENSION = re.compile(r"\.[^/.]+$")


def relative_path(from_file: str, to_file: str, strip_extension: bool = False) -> str:
    """Compute the import path from *from_file* to *to_file*.

    Examples::

        relative_path("src/routes/index.tsx", "src/routes/about.tsx") -> "./about.tsx"
        relative_path("src/a/b.tsx", "src/c/d.ts", True)             -> "../c/d"
    """
    from_parts = from_file.split("/")[:-1]
    to_parts = to_file.split("/")

    common = 0
    while (
        common < len(from_parts)
        and common < len(to_parts)
        and from_parts[common] == to_parts[common]
    ):
        common += 1

    parts = [".."] * (len(from_parts) - common) + to_parts[common:]
    result = "/".join(parts)
    if not result.startswith("."):
        result = "./" + result

    if strip_extension:
        result = _EXTENSION.sub("", result)
    return result


def convert_dot_files(path: str) -> str:
    """Turn ``_dot_`` segment prefixes into literal dots (``_dot_env`` -> ``.env``)."""
    return "/".join(_DOT_MARKER.sub(".", segment) for segment in path.split("/"))


def strip_option_prefix(path: str) -> str:
    """Drop an ``__option__`` marker from the filename.

    ``dir/__postgres__schema.prisma`` becomes ``dir/schema.prisma``; paths
    without the marker are returned unchanged.
    """
    match = _OPTION_PREFIX.match(path)
    if match:
        return (match.group(1) or "") + match.group(3)
    return path
