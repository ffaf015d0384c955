"""
Edit Engine - applies ToolOperations to a ProjectTree.

Each operation is one atomic mutation of the tree. Content edits record an
undo entry holding their inverse so that UndoLast can restore the previous
state of a file exactly.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from livecanvas.config import EditorConfig
from livecanvas.errors import (
    LiveCanvasError,
    PatternNotFoundError,
    UnknownToolError,
    UnsupportedCommandError,
    UnsupportedOperationError,
)
from livecanvas.types import (
    Copy,
    CreateDirectory,
    CreateFile,
    Delete,
    InsertAt,
    Move,
    Rename,
    ReplaceContent,
    ToolOperation,
    ToolResult,
    UndoLast,
    UnknownTool,
    UnsupportedCommand,
    UnsupportedOperation,
    ViewFile,
)
from livecanvas.vfs import ProjectTree

logger = logging.getLogger(__name__)


def insert_lines(content: str, line: int, text: str) -> str:
    """
    Insert text so that it starts at the 1-based line index.

    A line index beyond the end of the file appends. A trailing newline on
    the original content is preserved.
    """
    if not content:
        return text
    trailing = content.endswith("\n")
    lines = (content[:-1] if trailing else content).split("\n")
    new_lines = (text[:-1] if text.endswith("\n") else text).split("\n")
    index = min(max(line, 1) - 1, len(lines))
    lines[index:index] = new_lines
    return "\n".join(lines) + ("\n" if trailing else "")


def replace_occurrence(content: str, match: str, replacement: str, occurrence: int) -> str | None:
    """Replace the n-th non-overlapping occurrence of match, or None if absent."""
    index = -1
    start = 0
    for _ in range(occurrence):
        index = content.find(match, start)
        if index == -1:
            return None
        start = index + len(match)
    return content[:index] + replacement + content[index + len(match):]


class EditEngine:
    """Applies tool operations to a project tree."""

    def __init__(self, tree: ProjectTree, config: EditorConfig | None = None):
        """
        Initialize the engine.

        Args:
            tree: The tree to mutate.
            config: Editor configuration. Uses defaults if not provided.
        """
        self.tree = tree
        self.config = config or EditorConfig()
        self._handlers: dict[type, Callable[[Any], ToolResult]] = {
            CreateFile: self._create_file,
            ReplaceContent: self._replace_content,
            InsertAt: self._insert_at,
            UndoLast: self._undo_last,
            ViewFile: self._view_file,
            Rename: self._rename,
            Move: self._move,
            Copy: self._copy,
            Delete: self._delete,
            CreateDirectory: self._create_directory,
            UnsupportedCommand: self._unsupported_command,
            UnsupportedOperation: self._unsupported_operation,
            UnknownTool: self._unknown_tool,
        }

    def apply(self, operation: ToolOperation) -> ToolResult:
        """
        Apply an operation, converting failures into an error ToolResult.

        The tree is left unchanged whenever an error result is returned.
        """
        try:
            return self.execute(operation)
        except LiveCanvasError as e:
            logger.info("%s failed: %s", operation.kind, e.message)
            return ToolResult(
                status="error",
                message=e.message,
                data=e.to_dict(),
                error_code=e.code,
            )

    def execute(self, operation: ToolOperation) -> ToolResult:
        """
        Apply an operation.

        Raises:
            LiveCanvasError: Any failure from the taxonomy in livecanvas.errors.
        """
        handler = self._handlers.get(type(operation))
        if handler is None:
            raise UnsupportedOperationError(f"Unsupported operation: {operation!r}")
        logger.debug("Applying %s", operation)
        return handler(operation)

    # =========================================================================
    # Content Edits
    # =========================================================================

    def _create_file(self, op: CreateFile) -> ToolResult:
        with self.tree.lock:
            existed = self.tree.is_file(op.path)
            version = self.tree.put(op.path, op.content, operation=op)
            node = self.tree.get(op.path)
        return ToolResult(
            status="success",
            message=f"{'Overwrote' if existed else 'Created'} file: {node.path}",
            data={
                "path": node.path,
                "version": version,
                "lines": node.line_count,
            },
        )

    def _replace_content(self, op: ReplaceContent) -> ToolResult:
        with self.tree.lock:
            content = self.tree.read(op.path)
            count = content.count(op.match)
            if count == 0:
                raise PatternNotFoundError(
                    f"String not found in {op.path}. The exact text to replace was not found; "
                    "make sure it matches including whitespace.",
                    op.path,
                )
            if op.replace_all:
                new_content = content.replace(op.match, op.replacement)
                replaced = count
            else:
                new_content = replace_occurrence(content, op.match, op.replacement, op.occurrence)
                if new_content is None:
                    raise PatternNotFoundError(
                        f"Occurrence {op.occurrence} of the string not found in {op.path} "
                        f"(it appears {count} time{'s' if count != 1 else ''})",
                        op.path,
                    )
                replaced = 1
            version = self.tree.put(op.path, new_content, operation=op)
        return ToolResult(
            status="success",
            message=f"Edited file: {op.path}",
            data={"path": op.path, "version": version, "replacements": replaced},
        )

    def _insert_at(self, op: InsertAt) -> ToolResult:
        with self.tree.lock:
            content = self.tree.read(op.path)
            version = self.tree.put(op.path, insert_lines(content, op.line, op.text), operation=op)
        return ToolResult(
            status="success",
            message=f"Inserted text into {op.path} at line {op.line}",
            data={"path": op.path, "version": version, "line": op.line},
        )

    def _undo_last(self, op: UndoLast) -> ToolResult:
        entry, version = self.tree.undo(op.path)
        return ToolResult(
            status="success",
            message=f"Undid last edit to {op.path}",
            data={"path": op.path, "version": version, "undone": entry.operation.kind},
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def _view_file(self, op: ViewFile) -> ToolResult:
        with self.tree.lock:
            if self.tree.is_dir(op.path):
                return ToolResult(
                    status="success",
                    message=f"Listed directory: {op.path}",
                    data={"path": op.path, "content": self.tree.format_listing(op.path)},
                )
            content = self.tree.read(op.path)

        lines = content.split("\n")
        total_lines = len(lines)

        start_line, end_line = op.view_range or (1, -1)
        start = max(0, min((start_line or 1) - 1, total_lines))
        end = total_lines if end_line is None or end_line == -1 else end_line
        end = max(start, min(end, total_lines))

        truncated = False
        if self.config.max_view_lines and end - start > self.config.max_view_lines:
            end = start + self.config.max_view_lines
            truncated = True

        selected_lines = lines[start:end]
        if self.config.include_line_numbers:
            width = len(str(end))
            output = "\n".join(
                f"{i + start + 1:>{width}}| {line}" for i, line in enumerate(selected_lines)
            )
        else:
            output = "\n".join(selected_lines)

        data = {
            "path": op.path,
            "content": output,
            "total_lines": total_lines,
            "lines": f"{start + 1}-{end}",
        }
        if truncated:
            data["truncated"] = True
        return ToolResult(status="success", message=f"Read file: {op.path}", data=data)

    # =========================================================================
    # Structural Operations
    # =========================================================================

    def _rename(self, op: Rename) -> ToolResult:
        version = self.tree.move(op.old_path, op.new_path)
        return ToolResult(
            status="success",
            message=f"Renamed {op.old_path} to {op.new_path}",
            data={"old_path": op.old_path, "new_path": op.new_path, "version": version},
        )

    def _move(self, op: Move) -> ToolResult:
        version = self.tree.move(op.old_path, op.new_path)
        return ToolResult(
            status="success",
            message=f"Moved {op.old_path} to {op.new_path}",
            data={"old_path": op.old_path, "new_path": op.new_path, "version": version},
        )

    def _copy(self, op: Copy) -> ToolResult:
        version = self.tree.copy(op.old_path, op.new_path)
        return ToolResult(
            status="success",
            message=f"Copied {op.old_path} to {op.new_path}",
            data={"old_path": op.old_path, "new_path": op.new_path, "version": version},
        )

    def _delete(self, op: Delete) -> ToolResult:
        version = self.tree.remove(op.path)
        return ToolResult(
            status="success",
            message=f"Deleted: {op.path}",
            data={"path": op.path, "version": version},
        )

    def _create_directory(self, op: CreateDirectory) -> ToolResult:
        with self.tree.lock:
            if self.tree.is_dir(op.path):
                return ToolResult(
                    status="success",
                    message=f"Directory already exists: {op.path}",
                    data={"path": op.path, "version": self.tree.version},
                )
            version = self.tree.mkdir(op.path)
        return ToolResult(
            status="success",
            message=f"Created directory: {op.path}",
            data={"path": op.path, "version": version},
        )

    # =========================================================================
    # Unsupported Calls
    # =========================================================================

    def _unsupported_command(self, op: UnsupportedCommand) -> ToolResult:
        raise UnsupportedCommandError(
            f"Unsupported command '{op.command}' for str_replace_editor. "
            "Use one of: create, str_replace, view, insert, undo_edit.",
            op.path,
        )

    def _unsupported_operation(self, op: UnsupportedOperation) -> ToolResult:
        raise UnsupportedOperationError(
            f"Unsupported operation '{op.operation}' for file_manager. "
            "Use one of: rename, delete, create_directory, move, copy."
        )

    def _unknown_tool(self, op: UnknownTool) -> ToolResult:
        raise UnknownToolError(f"Unknown tool: {op.tool_name}")
