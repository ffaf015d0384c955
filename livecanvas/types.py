"""
Core types for LiveCanvas - the virtual project tree, tool operations and
tool-call records shared by the interpreter, edit engine and preview.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal, Union

# Tool names exposed to the agent. These are part of the wire contract.
STR_REPLACE_EDITOR = "str_replace_editor"
FILE_MANAGER = "file_manager"


# =============================================================================
# Tree Nodes
# =============================================================================


class NodeType(str, Enum):
    """Type of node in the project tree."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class Timestamps:
    """Timestamps for a tree node."""

    created_at: float = field(default_factory=time.time)
    modified_at: float = field(default_factory=time.time)

    def touch_modify(self) -> None:
        """Update modification time."""
        self.modified_at = time.time()


@dataclass
class FileNode:
    """A file or directory in the project tree."""

    path: str
    node_type: NodeType
    content: str | None = None
    children: list[str] = field(default_factory=list)
    timestamps: Timestamps = field(default_factory=Timestamps)
    # Tree version at which this node last changed
    modified_version: int = 0

    @property
    def is_file(self) -> bool:
        return self.node_type == NodeType.FILE

    @property
    def is_directory(self) -> bool:
        return self.node_type == NodeType.DIRECTORY

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1] or "/"

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode()) if self.content else 0

    @property
    def line_count(self) -> int:
        if not self.content:
            return 0
        return self.content.count("\n") + 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the snapshot entry format."""
        if self.is_file:
            return {"kind": NodeType.FILE.value, "content": self.content or ""}
        return {"kind": NodeType.DIRECTORY.value}

    def copy(self, path: str | None = None) -> "FileNode":
        """Return a detached copy, optionally under a different path."""
        return FileNode(
            path=path or self.path,
            node_type=self.node_type,
            content=self.content,
            children=list(self.children),
            timestamps=Timestamps(
                created_at=self.timestamps.created_at,
                modified_at=self.timestamps.modified_at,
            ),
            modified_version=self.modified_version,
        )


# =============================================================================
# Tool Operations
# =============================================================================


@dataclass(frozen=True)
class CreateFile:
    """Create or overwrite a file."""

    kind: ClassVar[str] = "create_file"

    path: str
    content: str = ""


@dataclass(frozen=True)
class ReplaceContent:
    """Replace one occurrence (or all) of a string in a file."""

    kind: ClassVar[str] = "replace_content"

    path: str
    match: str
    replacement: str = ""
    occurrence: int = 1
    replace_all: bool = False


@dataclass(frozen=True)
class InsertAt:
    """Insert text so that it starts at a 1-based line index."""

    kind: ClassVar[str] = "insert_at"

    path: str
    line: int
    text: str


@dataclass(frozen=True)
class UndoLast:
    """Revert the most recent recorded edit of a file."""

    kind: ClassVar[str] = "undo_last"

    path: str


@dataclass(frozen=True)
class ViewFile:
    """Read a file (or list a directory) without mutating anything."""

    kind: ClassVar[str] = "view_file"

    path: str
    view_range: tuple[int, int] | None = None


@dataclass(frozen=True)
class Rename:
    kind: ClassVar[str] = "rename"

    old_path: str
    new_path: str


@dataclass(frozen=True)
class Move:
    kind: ClassVar[str] = "move"

    old_path: str
    new_path: str


@dataclass(frozen=True)
class Copy:
    kind: ClassVar[str] = "copy"

    old_path: str
    new_path: str


@dataclass(frozen=True)
class Delete:
    kind: ClassVar[str] = "delete"

    path: str


@dataclass(frozen=True)
class CreateDirectory:
    kind: ClassVar[str] = "create_directory"

    path: str


@dataclass(frozen=True)
class UnsupportedCommand:
    """File-editing call with a command outside the supported set."""

    kind: ClassVar[str] = "unsupported_command"

    command: str | None
    path: str | None = None


@dataclass(frozen=True)
class UnsupportedOperation:
    """File-management call with an operation outside the supported set."""

    kind: ClassVar[str] = "unsupported_operation"

    operation: str | None


@dataclass(frozen=True)
class UnknownTool:
    kind: ClassVar[str] = "unknown_tool"

    tool_name: str


ToolOperation = Union[
    CreateFile,
    ReplaceContent,
    InsertAt,
    UndoLast,
    ViewFile,
    Rename,
    Move,
    Copy,
    Delete,
    CreateDirectory,
    UnsupportedCommand,
    UnsupportedOperation,
    UnknownTool,
]


# =============================================================================
# Undo History
# =============================================================================


@dataclass(frozen=True)
class RestoreContent:
    """Inverse of a content edit.

    ``content`` of None means the file did not exist before the edit; undo
    then removes it together with any directories the edit created.
    """

    path: str
    content: str | None
    created_directories: tuple[str, ...] = ()


@dataclass
class HistoryEntry:
    """One undoable edit: the operation applied and how to revert it."""

    path: str
    operation: ToolOperation
    inverse: RestoreContent
    version: int = 0
    timestamp: float = field(default_factory=time.time)


# =============================================================================
# Tool Calls
# =============================================================================


class ToolCallPhase(str, Enum):
    """Phase of a streamed tool call."""

    PENDING = "pending"
    COMPLETED = "completed"


# Tool result types for agent responses
ToolResultStatus = Literal["success", "error"]


@dataclass
class ToolResult:
    """Standard result format for tool operations."""

    status: ToolResultStatus
    message: str
    data: Any = None
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        result = {"status": self.status, "message": self.message}
        if self.error_code is not None:
            result["error_code"] = self.error_code
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class ToolCallEvent:
    """One event of a tool call as delivered by the chat transport.

    While ``phase`` is pending, ``args`` holds whatever arguments are known
    and ``args_delta`` carries the next fragment of streamed JSON text.
    """

    call_id: str
    tool_name: str
    phase: ToolCallPhase = ToolCallPhase.PENDING
    args: dict[str, Any] | None = None
    args_delta: str | None = None


@dataclass
class ToolCallRecord:
    """Session-side state of an in-flight or completed tool call."""

    call_id: str
    tool_name: str
    args: dict[str, Any] = field(default_factory=dict)
    raw_arguments: str = ""
    phase: ToolCallPhase = ToolCallPhase.PENDING
    kind: str | None = None
    message: str = ""
    result: ToolResult | None = None
    started_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    @property
    def is_completed(self) -> bool:
        return self.phase == ToolCallPhase.COMPLETED

    @property
    def result_summary(self) -> str | None:
        return self.result.message if self.result else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "tool_name": self.tool_name,
            "kind": self.kind,
            "args": self.args,
            "phase": self.phase.value,
            "message": self.message,
            "result": self.result.to_dict() if self.result else None,
        }


# =============================================================================
# Preview
# =============================================================================


class RenderState(str, Enum):
    """State of the preview renderer."""

    IDLE = "idle"
    BUILDING = "building"
    RENDERED = "rendered"
    FAILED = "failed"


@dataclass
class PreviewError:
    """Error payload shown on the preview surface."""

    message: str
    kind: str = "runtime_failure"
    path: str | None = None
    line: int | None = None
    column: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "kind": self.kind,
            "path": self.path,
            "line": self.line,
            "column": self.column,
        }


@dataclass
class PreviewBundle:
    """Everything a sandbox needs to execute one build of the project."""

    version: int
    entry: str
    # Module id (absolute virtual path) -> transpiled code, dependencies first
    modules: dict[str, str] = field(default_factory=dict)
    styles: dict[str, str] = field(default_factory=dict)
    external: list[str] = field(default_factory=list)
    # True when JSX/TS still has to be compiled inside the realm
    needs_transform: bool = True


@dataclass
class RenderOutput:
    """Handle to a successful render."""

    version: int
    entry: str
    html: str | None = None
    stdout: str | None = None
    rendered_at: float = field(default_factory=time.time)


@dataclass
class PreviewStatus:
    """Snapshot of the renderer state for the preview surface."""

    state: RenderState
    version: int
    output: RenderOutput | None = None
    error: PreviewError | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "version": self.version,
            "output_version": self.output.version if self.output else None,
            "error": self.error.to_dict() if self.error else None,
        }
