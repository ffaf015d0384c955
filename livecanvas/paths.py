"""
Virtual path helpers.

All tree paths are absolute POSIX-style strings rooted at "/". Nothing here
touches the real filesystem.
"""

from __future__ import annotations

import posixpath
from typing import Any

ROOT = "/"


def normalize_path(path: str | None) -> str:
    """Normalize a path to canonical absolute form.

    Collapses repeated slashes, resolves "." and ".." (never above the root)
    and strips the trailing slash except for the root itself.
    """
    if not path:
        return ROOT
    path = path.replace("\\", "/").strip()
    normalized = posixpath.normpath("/" + path.lstrip("/"))
    # normpath keeps a leading "//" on POSIX
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def join_path(base: str, *parts: str) -> str:
    """Join path segments onto base and normalize the result."""
    return normalize_path(posixpath.join(normalize_path(base), *[p.lstrip("/") for p in parts]))


def split_path(path: str) -> tuple[str, str]:
    """Split a path into (parent, name). The root splits into ("/", "")."""
    path = normalize_path(path)
    if path == ROOT:
        return ROOT, ""
    parent, name = path.rsplit("/", 1)
    return parent or ROOT, name


def parent_path(path: str) -> str | None:
    """Return the parent directory path, or None for the root."""
    path = normalize_path(path)
    if path == ROOT:
        return None
    return split_path(path)[0]


def path_segments(path: str) -> list[str]:
    """Return the non-empty segments of a path."""
    return [segment for segment in normalize_path(path).split("/") if segment]


def ancestors(path: str) -> list[str]:
    """Return every ancestor directory of path, root first, excluding path."""
    result = []
    current = ROOT
    for segment in path_segments(path)[:-1]:
        current = join_path(current, segment)
        result.append(current)
    return result


def is_descendant(path: str, ancestor: str) -> bool:
    """True if path lies strictly below ancestor."""
    path = normalize_path(path)
    ancestor = normalize_path(ancestor)
    if ancestor == ROOT:
        return path != ROOT
    return path.startswith(ancestor + "/")


def rebase_path(path: str, old_prefix: str, new_prefix: str) -> str:
    """Move path from under old_prefix to the same place under new_prefix."""
    if path == old_prefix:
        return new_prefix
    return new_prefix.rstrip("/") + path[len(old_prefix):]


def extension(path: str) -> str:
    """Return the lowercase extension of the final segment, including the dot."""
    name = split_path(path)[1]
    if "." not in name.lstrip("."):
        return ""
    return "." + name.rsplit(".", 1)[-1].lower()


def display_name(path: Any, placeholder: str = "file") -> str:
    """Return the final path segment for display purposes.

    Total over any input: absent, empty and non-string paths (and paths that
    end in a slash) yield the placeholder. Never raises.
    """
    if not isinstance(path, str) or not path:
        return placeholder
    name = path.rsplit("/", 1)[-1]
    return name or placeholder


def resolve_specifier(specifier: str, importer: str, root_alias: str = "@/") -> str | None:
    """
    Resolve an import specifier to an absolute virtual path.

    Args:
        specifier: The string inside the import statement.
        importer: Absolute path of the importing module.
        root_alias: Prefix that stands for the tree root (e.g. "@/").

    Returns:
        The absolute path (without extension probing), or None when the
        specifier names an external package.
    """
    if root_alias and specifier.startswith(root_alias):
        return normalize_path(specifier[len(root_alias):])
    if specifier.startswith("./") or specifier.startswith("../") or specifier in (".", ".."):
        directory = parent_path(importer) or ROOT
        return join_path(directory, specifier)
    if specifier.startswith("/"):
        return normalize_path(specifier)
    return None
