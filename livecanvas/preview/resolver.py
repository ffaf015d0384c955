"""
Dependency/Import Resolver.

Maps import specifiers found in component source to files of the project
tree, computes the transitive local closure of the entry module and rewrites
local specifiers to canonical module ids.
"""

from __future__ import annotations

import json
import re
from typing import Callable, Mapping

from livecanvas.config import DEFAULT_EXTENSIONS
from livecanvas.errors import CyclicDependencyError, ResolutionError
from livecanvas.paths import extension, join_path, normalize_path, resolve_specifier

# import x from '...', export { y } from '...', import '...', import('...'),
# require('...'). One alternative per form so that matches come out in
# source order.
_SPECIFIER_PATTERN = re.compile(
    r"""\b(?:import|export)\b[^'";]*?\bfrom\s*(?P<q1>['"])(?P<s1>[^'"\n]+)(?P=q1)"""
    r"""|\bimport\s*(?P<q2>['"])(?P<s2>[^'"\n]+)(?P=q2)"""
    r"""|\b(?:import|require)\s*\(\s*(?P<q3>['"])(?P<s3>[^'"\n]+)(?P=q3)\s*\)""",
    re.DOTALL,
)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"^[ \t]*//[^\n]*", re.MULTILINE)

# Files that are scanned for further imports
SOURCE_EXTENSIONS = (".jsx", ".tsx", ".js", ".ts", ".mjs")


def _blank(match: re.Match) -> str:
    # Keep newlines so offsets and line numbers survive
    return re.sub(r"[^\n]", " ", match.group(0))


def strip_comments(source: str) -> str:
    """Blank out block comments and whole-line // comments, keeping offsets."""
    return _LINE_COMMENT.sub(_blank, _BLOCK_COMMENT.sub(_blank, source))


def _specifier_spans(source: str) -> list[tuple[int, int, str]]:
    """Return (start, end, specifier) for each specifier, quotes included in the span."""
    spans = []
    for match in _SPECIFIER_PATTERN.finditer(strip_comments(source)):
        for group in ("1", "2", "3"):
            specifier = match.group("s" + group)
            if specifier is not None:
                spans.append(
                    (match.start("q" + group), match.end("s" + group) + 1, specifier)
                )
                break
    return spans


class ImportResolver:
    """
    Resolves imports against a consistent {path: content} view of the tree.

    Build one per preview build from ``ProjectTree.read_consistent()`` (or use
    ``from_tree``) so that every lookup sees the same tree version.
    """

    def __init__(
        self,
        files: Mapping[str, str],
        root_alias: str = "@/",
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
    ):
        self.files = files
        self.root_alias = root_alias
        self.extensions = extensions

    @classmethod
    def from_tree(
        cls,
        tree,
        root_alias: str = "@/",
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
    ) -> "ImportResolver":
        return cls(tree.files(), root_alias=root_alias, extensions=extensions)

    # =========================================================================
    # Scanning
    # =========================================================================

    def scan(self, source: str) -> list[str]:
        """Return every import specifier in source, in order, without duplicates."""
        seen: dict[str, None] = {}
        for _, _, specifier in _specifier_spans(source):
            seen.setdefault(specifier, None)
        return list(seen)

    def is_local(self, specifier: str) -> bool:
        return resolve_specifier(specifier, "/", self.root_alias) is not None

    # =========================================================================
    # Resolution
    # =========================================================================

    def probe(self, base: str) -> str | None:
        """Find the file a specifier without extension refers to."""
        candidates = [base]
        candidates.extend(base + ext for ext in self.extensions)
        candidates.extend(join_path(base, "index" + ext) for ext in self.extensions)
        for candidate in candidates:
            if candidate in self.files:
                return candidate
        return None

    def resolve(self, specifier: str, importer: str) -> str | None:
        """
        Resolve a specifier imported by importer.

        Returns:
            The absolute path of the target file, or None for external
            packages.

        Raises:
            ResolutionError: If a local specifier matches no file.
        """
        base = resolve_specifier(specifier, normalize_path(importer), self.root_alias)
        if base is None:
            return None
        resolved = self.probe(base)
        if resolved is None:
            raise ResolutionError(
                f"Cannot resolve import '{specifier}' from {importer}",
                specifier=specifier,
                path=importer,
            )
        return resolved

    def dependencies(self, path: str) -> list[str]:
        """Local files imported by path, in import order."""
        if extension(path) not in SOURCE_EXTENSIONS:
            return []
        result: dict[str, None] = {}
        for specifier in self.scan(self.files[path]):
            resolved = self.resolve(specifier, path)
            if resolved is not None:
                result.setdefault(resolved, None)
        return list(result)

    def external_imports(self, path: str) -> list[str]:
        """Package specifiers imported by path, in import order."""
        if extension(path) not in SOURCE_EXTENSIONS:
            return []
        return [s for s in self.scan(self.files[path]) if not self.is_local(s)]

    def closure(self, entry: str) -> list[str]:
        """
        Transitive local closure of entry, dependencies before dependents.

        Raises:
            ResolutionError: If any local import does not resolve.
            CyclicDependencyError: If local modules import each other in a cycle.
        """
        entry = normalize_path(entry)
        if entry not in self.files:
            raise ResolutionError(f"Entry module not found: {entry}", specifier=entry, path=entry)

        order: list[str] = []
        done: set[str] = set()
        stack: list[str] = []

        def visit(path: str) -> None:
            if path in done:
                return
            if path in stack:
                raise CyclicDependencyError(stack[stack.index(path):] + [path])
            stack.append(path)
            for dependency in self.dependencies(path):
                visit(dependency)
            stack.pop()
            done.add(path)
            order.append(path)

        visit(entry)
        return order

    # =========================================================================
    # Rewriting
    # =========================================================================

    def rewrite_imports(
        self,
        source: str,
        importer: str,
        mapper: Callable[[str], str] | None = None,
    ) -> str:
        """
        Replace every local specifier with the id of the file it resolves to.

        Args:
            source: Module source.
            importer: Path of the module the source belongs to.
            mapper: Turns a resolved path into the replacement specifier.
                Defaults to the path itself.

        Returns:
            The rewritten source. Replacements are double-quoted.
        """
        mapper = mapper or (lambda path: path)
        pieces = []
        last = 0
        for start, end, specifier in _specifier_spans(source):
            resolved = self.resolve(specifier, importer)
            if resolved is None:
                continue
            pieces.append(source[last:start])
            pieces.append(json.dumps(mapper(resolved), ensure_ascii=False))
            last = end
        pieces.append(source[last:])
        return "".join(pieces)
