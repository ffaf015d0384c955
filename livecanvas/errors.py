"""
Error taxonomy for LiveCanvas.

Every failure raised by the tree, the edit engine, the interpreter or the
preview pipeline is a LiveCanvasError carrying a stable ``code``. The
tool-call boundary turns these into error ToolResults; the preview boundary
turns them into a failed PreviewStatus.
"""

from __future__ import annotations


class LiveCanvasError(Exception):
    """Base class for all LiveCanvas errors."""

    code = "error"

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def to_dict(self) -> dict:
        result = {"code": self.code, "message": self.message}
        if self.path is not None:
            result["path"] = self.path
        return result


# =============================================================================
# Tree and edit errors
# =============================================================================


class NotFoundError(LiveCanvasError):
    """The path does not exist (or is not the expected kind of node)."""

    code = "not_found"


class ConflictError(LiveCanvasError):
    """The destination path already exists."""

    code = "conflict"


class InvalidPathError(LiveCanvasError):
    """Structural collision, e.g. treating a file as a directory."""

    code = "invalid_path"


class PatternNotFoundError(LiveCanvasError):
    """The text to replace does not occur in the file."""

    code = "pattern_not_found"


class NothingToUndoError(LiveCanvasError):
    """No edit history is recorded for the path."""

    code = "nothing_to_undo"


# =============================================================================
# Tool-call errors
# =============================================================================


class MissingArgumentError(LiveCanvasError):
    """A required tool argument is absent."""

    code = "missing_argument"

    def __init__(self, message: str, argument: str | None = None, path: str | None = None):
        super().__init__(message, path=path)
        self.argument = argument


class InvalidArgumentError(MissingArgumentError):
    """A tool argument is present but has an unusable type or value."""

    code = "invalid_argument"


class UnsupportedCommandError(LiveCanvasError):
    """The file-editing tool was called with an unknown command."""

    code = "unsupported_command"


class UnsupportedOperationError(LiveCanvasError):
    """The file-management tool was called with an unknown operation."""

    code = "unsupported_operation"


class UnknownToolError(LiveCanvasError):
    """The agent called a tool this session does not provide."""

    code = "unknown_tool"


# =============================================================================
# Preview errors
# =============================================================================


class PreviewFailure(LiveCanvasError):
    """Base class for resolution, build and runtime failures of the preview."""

    code = "preview_failure"

    def __init__(
        self,
        message: str,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        super().__init__(message, path=path)
        self.line = line
        self.column = column

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        return result


class ResolutionError(PreviewFailure):
    """A local import specifier does not resolve to a file in the tree."""

    code = "resolution_error"

    def __init__(self, message: str, specifier: str, path: str | None = None):
        super().__init__(message, path=path)
        self.specifier = specifier


class CyclicDependencyError(PreviewFailure):
    """Local modules import each other in a cycle."""

    code = "cyclic_dependency"

    def __init__(self, cycle: list[str]):
        super().__init__(
            "Circular import: " + " -> ".join(cycle),
            path=cycle[0] if cycle else None,
        )
        self.cycle = cycle


class BuildFailure(PreviewFailure):
    """Transpiling a module failed."""

    code = "build_failure"


class RuntimeFailure(PreviewFailure):
    """Generated code raised while executing inside the sandbox."""

    code = "runtime_failure"


class BuildCancelled(LiveCanvasError):
    """A newer tree version superseded the build in flight."""

    code = "build_cancelled"
