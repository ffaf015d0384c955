"""
ProjectTree - the in-memory virtual file tree for LiveCanvas.

The tree owns every FileNode of a session, the global version counter and the
bounded undo history. All reads and writes go through one re-entrant lock so
that readers always observe either the state before or after a mutation,
never something in between. Change listeners are notified after the lock is
released.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Iterator

from livecanvas.errors import (
    ConflictError,
    InvalidPathError,
    NotFoundError,
    NothingToUndoError,
)
from livecanvas.paths import (
    ROOT,
    ancestors,
    is_descendant,
    normalize_path,
    parent_path,
    rebase_path,
)
from livecanvas.types import (
    FileNode,
    HistoryEntry,
    NodeType,
    RestoreContent,
    Timestamps,
    ToolOperation,
)

logger = logging.getLogger(__name__)

ChangeListener = Callable[[int], None]


def format_size(size_bytes: int) -> str:
    """Format byte size to human readable."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


class ProjectTree:
    """
    In-memory hierarchical store of files and directories.

    Every successful mutation increments ``version`` and notifies subscribers
    with the new version number.
    """

    def __init__(self, max_history: int = 100):
        """
        Initialize an empty tree containing only the root directory.

        Args:
            max_history: Maximum number of undo entries kept across all
                files. Oldest entries are dropped first. 0 disables the bound.
        """
        self.max_history = max_history
        self._lock = threading.RLock()
        self._nodes: dict[str, FileNode] = {
            ROOT: FileNode(path=ROOT, node_type=NodeType.DIRECTORY)
        }
        self._version = 0
        self._history: list[HistoryEntry] = []
        self._listeners: list[ChangeListener] = []

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def version(self) -> int:
        return self._version

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock guarding the tree; hold it to group reads and writes."""
        return self._lock

    @property
    def root(self) -> FileNode:
        return self.get(ROOT)

    @property
    def history(self) -> list[HistoryEntry]:
        """Undo entries, most recent last."""
        with self._lock:
            return list(self._history)

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes) - 1

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.exists(path)

    # =========================================================================
    # Change Notification
    # =========================================================================

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a callback invoked with the new version after each mutation.

        Returns:
            A function that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, version: int) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(version)
            except Exception:
                logger.exception("Change listener %r failed for version %d", listener, version)

    # =========================================================================
    # Read Operations
    # =========================================================================

    def exists(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._nodes

    def is_file(self, path: str) -> bool:
        with self._lock:
            node = self._nodes.get(normalize_path(path))
            return node is not None and node.is_file

    def is_dir(self, path: str) -> bool:
        with self._lock:
            node = self._nodes.get(normalize_path(path))
            return node is not None and node.is_directory

    def get(self, path: str) -> FileNode:
        """
        Get a detached copy of the node at path.

        Raises:
            NotFoundError: If nothing exists at path.
        """
        path = normalize_path(path)
        with self._lock:
            node = self._nodes.get(path)
            if node is None:
                raise NotFoundError(f"Path not found: {path}", path)
            return node.copy()

    def read(self, path: str) -> str:
        """
        Read the content of a file.

        Raises:
            NotFoundError: If the file does not exist.
            InvalidPathError: If path is a directory.
        """
        path = normalize_path(path)
        with self._lock:
            node = self._nodes.get(path)
            if node is None:
                raise NotFoundError(f"File not found: {path}", path)
            if node.is_directory:
                raise InvalidPathError(f"Path is a directory, not a file: {path}", path)
            return node.content or ""

    def list(self, path: str = ROOT) -> list[FileNode]:
        """
        List the immediate children of a directory in display order.

        Raises:
            NotFoundError: If path does not exist or is not a directory.
        """
        path = normalize_path(path)
        with self._lock:
            node = self._nodes.get(path)
            if node is None or not node.is_directory:
                raise NotFoundError(f"Directory not found: {path}", path)
            return [self._nodes[child].copy() for child in node.children]

    def walk(self, path: str = ROOT) -> list[FileNode]:
        """Return every descendant of path in display (pre-)order."""
        path = normalize_path(path)
        with self._lock:
            if path not in self._nodes:
                raise NotFoundError(f"Path not found: {path}", path)
            return [self._nodes[p].copy() for p in self._subtree_paths(path)[1:]]

    def files(self) -> dict[str, str]:
        """Return a consistent {path: content} mapping of every file."""
        with self._lock:
            return {
                p: self._nodes[p].content or ""
                for p in self._subtree_paths(ROOT)
                if self._nodes[p].is_file
            }

    def read_consistent(self) -> tuple[int, dict[str, str]]:
        """Return (version, files) observed atomically."""
        with self._lock:
            return self._version, self.files()

    def history_for(self, path: str) -> list[HistoryEntry]:
        """Undo entries recorded for one file, most recent last."""
        path = normalize_path(path)
        with self._lock:
            return [entry for entry in self._history if entry.path == path]

    # =========================================================================
    # Mutations
    # =========================================================================

    def put(self, path: str, content: str, operation: ToolOperation | None = None) -> int:
        """
        Create or overwrite a file, creating missing ancestor directories.

        Args:
            path: File path.
            content: New text content.
            operation: When given, an undo entry for this operation is
                appended to the history as part of the same mutation.

        Returns:
            The new tree version.

        Raises:
            InvalidPathError: If path is the root or a directory, or an
                ancestor is a file.
        """
        path = normalize_path(path)
        with self._lock:
            if path == ROOT:
                raise InvalidPathError("Cannot write to the root directory", path)
            existing = self._nodes.get(path)
            if existing is not None and existing.is_directory:
                raise InvalidPathError(f"Path is a directory, not a file: {path}", path)
            self._check_ancestors(path)

            previous = existing.content if existing is not None else None
            version = self._bump()
            created = self._ensure_parents(path, version)
            if existing is not None:
                existing.content = content
                existing.modified_version = version
                existing.timestamps.touch_modify()
            else:
                self._attach(
                    FileNode(
                        path=path,
                        node_type=NodeType.FILE,
                        content=content,
                        modified_version=version,
                    )
                )
            if operation is not None:
                self._record(
                    HistoryEntry(
                        path=path,
                        operation=operation,
                        inverse=RestoreContent(path, previous, tuple(created)),
                        version=version,
                    )
                )
        self._notify(version)
        return version

    def mkdir(self, path: str) -> int:
        """
        Create a directory and any missing ancestors.

        An existing directory is left untouched and the version unchanged.

        Raises:
            InvalidPathError: If a file exists at path or at an ancestor.
        """
        path = normalize_path(path)
        with self._lock:
            existing = self._nodes.get(path)
            if existing is not None:
                if existing.is_directory:
                    return self._version
                raise InvalidPathError(f"A file already exists at {path}", path)
            self._check_ancestors(path)
            version = self._bump()
            self._ensure_parents(path, version)
            self._attach(
                FileNode(path=path, node_type=NodeType.DIRECTORY, modified_version=version)
            )
        self._notify(version)
        return version

    def remove(self, path: str) -> int:
        """
        Delete a file, or a directory with its entire subtree.

        Undo history of every removed file is discarded.

        Raises:
            NotFoundError: If path does not exist.
            InvalidPathError: If path is the root.
        """
        path = normalize_path(path)
        with self._lock:
            if path == ROOT:
                raise InvalidPathError("Cannot delete the root directory", path)
            if path not in self._nodes:
                raise NotFoundError(f"Path not found: {path}", path)
            removed = self._remove_subtree(path)
            self._history = [e for e in self._history if e.path not in removed]
            version = self._bump()
        self._notify(version)
        return version

    def move(self, old_path: str, new_path: str) -> int:
        """
        Relocate a file or subtree. Undo history moves with it.

        A move within the same directory keeps the entry's display position.

        Raises:
            NotFoundError: If old_path does not exist.
            ConflictError: If new_path already exists.
            InvalidPathError: For the root, or a move into its own subtree.
        """
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        with self._lock:
            self._check_relocation(old_path, new_path, "move")
            subtree = self._subtree_paths(old_path)
            old_parent = parent_path(old_path)
            new_parent = parent_path(new_path)

            version = self._bump()
            self._ensure_parents(new_path, version)
            moved = {}
            for path in subtree:
                node = self._nodes.pop(path)
                node.path = rebase_path(path, old_path, new_path)
                node.children = [rebase_path(c, old_path, new_path) for c in node.children]
                node.modified_version = version
                moved[node.path] = node
            self._nodes.update(moved)

            if old_parent == new_parent:
                siblings = self._nodes[old_parent].children
                siblings[siblings.index(old_path)] = new_path
            else:
                self._nodes[old_parent].children.remove(old_path)
                self._nodes[new_parent].children.append(new_path)

            for entry in self._history:
                if entry.path == old_path or is_descendant(entry.path, old_path):
                    entry.path = rebase_path(entry.path, old_path, new_path)
                    created = tuple(
                        rebase_path(d, old_path, new_path)
                        if d == old_path or is_descendant(d, old_path)
                        else d
                        for d in entry.inverse.created_directories
                    )
                    entry.inverse = RestoreContent(entry.path, entry.inverse.content, created)
        self._notify(version)
        return version

    def copy(self, old_path: str, new_path: str) -> int:
        """
        Duplicate a file or subtree. Copies start with an empty undo history.

        Raises:
            NotFoundError: If old_path does not exist.
            ConflictError: If new_path already exists.
            InvalidPathError: For the root, or a copy into its own subtree.
        """
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        with self._lock:
            self._check_relocation(old_path, new_path, "copy")
            version = self._bump()
            self._ensure_parents(new_path, version)
            for path in self._subtree_paths(old_path):
                source = self._nodes[path]
                clone = FileNode(
                    path=rebase_path(path, old_path, new_path),
                    node_type=source.node_type,
                    content=source.content,
                    children=[rebase_path(c, old_path, new_path) for c in source.children],
                    modified_version=version,
                )
                self._nodes[clone.path] = clone
            self._nodes[parent_path(new_path)].children.append(new_path)
        self._notify(version)
        return version

    def undo(self, path: str) -> tuple[HistoryEntry, int]:
        """
        Pop the most recent undo entry for path and restore its inverse.

        Returns:
            The popped entry and the new tree version.

        Raises:
            NothingToUndoError: If no history exists for path.
        """
        path = normalize_path(path)
        with self._lock:
            index = next(
                (i for i in range(len(self._history) - 1, -1, -1) if self._history[i].path == path),
                None,
            )
            if index is None:
                raise NothingToUndoError(f"No edit history for {path}", path)
            entry = self._history.pop(index)
            inverse = entry.inverse
            version = self._bump()

            node = self._nodes.get(path)
            if inverse.content is None:
                if node is not None:
                    self._remove_subtree(path)
                for directory in reversed(inverse.created_directories):
                    dir_node = self._nodes.get(directory)
                    if dir_node is not None and dir_node.is_directory and not dir_node.children:
                        self._remove_subtree(directory)
            elif node is not None:
                node.content = inverse.content
                node.modified_version = version
                node.timestamps.touch_modify()
            else:
                self._ensure_parents(path, version)
                self._attach(
                    FileNode(
                        path=path,
                        node_type=NodeType.FILE,
                        content=inverse.content,
                        modified_version=version,
                    )
                )
        self._notify(version)
        return entry, version

    # =========================================================================
    # Snapshots
    # =========================================================================

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """
        Serialize the tree as {path: {"kind": "file", "content": ...} |
        {"kind": "directory"}} in display order. The root is implied.
        """
        with self._lock:
            return {
                path: self._nodes[path].to_dict()
                for path in self._subtree_paths(ROOT)[1:]
            }

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.snapshot(), **kwargs)

    @classmethod
    def from_snapshot(cls, data: dict[str, Any], max_history: int = 100) -> "ProjectTree":
        """
        Rebuild a fresh tree (version 0, empty history) from a snapshot.

        Entries may use either a "kind" or a "type" key. Parents missing from
        the snapshot are created implicitly.

        Raises:
            InvalidPathError: If the snapshot is malformed.
        """
        if not isinstance(data, dict):
            raise InvalidPathError("Snapshot must be a mapping of paths to entries")

        tree = cls(max_history=max_history)
        for raw_path, entry in data.items():
            path = normalize_path(raw_path)
            if path == ROOT:
                continue
            kind = None
            if isinstance(entry, dict):
                kind = entry.get("kind", entry.get("type"))
            if kind == NodeType.FILE.value:
                tree._load(path, NodeType.FILE, str(entry.get("content") or ""))
            elif kind in (NodeType.DIRECTORY.value, "folder"):
                tree._load(path, NodeType.DIRECTORY, None)
            else:
                raise InvalidPathError(f"Invalid snapshot entry for {path}", path)
        return tree

    @classmethod
    def from_json(cls, text: str, max_history: int = 100) -> "ProjectTree":
        return cls.from_snapshot(json.loads(text), max_history=max_history)

    def _load(self, path: str, node_type: NodeType, content: str | None) -> None:
        existing = self._nodes.get(path)
        if existing is not None:
            if existing.node_type != node_type:
                raise InvalidPathError(f"Conflicting snapshot entries for {path}", path)
            existing.content = content
            return
        self._check_ancestors(path)
        self._ensure_parents(path, 0)
        self._attach(FileNode(path=path, node_type=node_type, content=content))

    # =========================================================================
    # Code View
    # =========================================================================

    def format_listing(self, path: str = ROOT) -> str:
        """Render an indented listing of path for display."""
        path = normalize_path(path)
        with self._lock:
            if path not in self._nodes:
                raise NotFoundError(f"Path not found: {path}", path)
            base_depth = path.count("/") if path != ROOT else 0
            lines = [path]
            for child_path in self._subtree_paths(path)[1:]:
                node = self._nodes[child_path]
                indent = "  " * (child_path.count("/") - base_depth)
                if node.is_directory:
                    lines.append(f"{indent}{node.name}/ ({len(node.children)} items)")
                else:
                    lines.append(f"{indent}{node.name} ({format_size(node.size_bytes)})")
            return "\n".join(lines)

    # =========================================================================
    # Internal Helpers (caller holds the lock)
    # =========================================================================

    def _bump(self) -> int:
        self._version += 1
        return self._version

    def _record(self, entry: HistoryEntry) -> None:
        self._history.append(entry)
        if self.max_history and len(self._history) > self.max_history:
            del self._history[: len(self._history) - self.max_history]

    def _check_ancestors(self, path: str) -> None:
        for ancestor in ancestors(path):
            node = self._nodes.get(ancestor)
            if node is not None and node.is_file:
                raise InvalidPathError(f"Cannot create {path}: {ancestor} is a file", path)

    def _check_relocation(self, old_path: str, new_path: str, verb: str) -> None:
        if old_path == ROOT:
            raise InvalidPathError(f"Cannot {verb} the root directory", old_path)
        if old_path not in self._nodes:
            raise NotFoundError(f"Source not found: {old_path}", old_path)
        if new_path == ROOT or new_path in self._nodes:
            raise ConflictError(f"Destination already exists: {new_path}", new_path)
        if is_descendant(new_path, old_path):
            raise InvalidPathError(f"Cannot {verb} {old_path} into itself", new_path)
        self._check_ancestors(new_path)

    def _ensure_parents(self, path: str, version: int) -> list[str]:
        created = []
        for ancestor in ancestors(path):
            if ancestor not in self._nodes:
                self._attach(
                    FileNode(
                        path=ancestor,
                        node_type=NodeType.DIRECTORY,
                        timestamps=Timestamps(),
                        modified_version=version,
                    )
                )
                created.append(ancestor)
        return created

    def _attach(self, node: FileNode) -> None:
        self._nodes[node.path] = node
        self._nodes[parent_path(node.path)].children.append(node.path)

    def _subtree_paths(self, path: str) -> list[str]:
        result = []
        stack = [path]
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self._nodes[current].children))
        return result

    def _remove_subtree(self, path: str) -> set[str]:
        removed = set(self._subtree_paths(path))
        self._nodes[parent_path(path)].children.remove(path)
        for p in removed:
            del self._nodes[p]
        return removed

    def iter_paths(self) -> Iterator[str]:
        with self._lock:
            paths = self._subtree_paths(ROOT)[1:]
        return iter(paths)
