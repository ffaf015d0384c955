"""
Tool-Call Interpreter - turns raw agent tool calls into ToolOperations.

Two phases are handled here:

- While a call is still streaming, only a display message is derived from
  whatever arguments have arrived (``generate_tool_message``). Nothing is
  validated and nothing is mutated.
- When the call completes, its arguments are validated against the pydantic
  schemas and normalized into exactly one ToolOperation variant
  (``ToolCallInterpreter.interpret``).
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from livecanvas.errors import InvalidArgumentError, MissingArgumentError
from livecanvas.paths import display_name, normalize_path
from livecanvas.schemas import (
    FILE_MANAGER_OPERATIONS,
    STR_REPLACE_COMMANDS,
    FileManagerInput,
    StrReplaceEditorInput,
)
from livecanvas.types import (
    FILE_MANAGER,
    STR_REPLACE_EDITOR,
    Copy,
    CreateDirectory,
    CreateFile,
    Delete,
    InsertAt,
    Move,
    Rename,
    ReplaceContent,
    ToolOperation,
    UndoLast,
    UnknownTool,
    UnsupportedCommand,
    UnsupportedOperation,
    ViewFile,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Display Messages
# =============================================================================


def _editor_message(args: dict[str, Any]) -> str:
    name = display_name(args.get("path"))
    command = args.get("command")
    if command == "create":
        return f"Creating file {name}"
    elif command == "str_replace":
        return f"Editing {name}"
    elif command == "view":
        return f"Viewing {name}"
    elif command == "insert":
        return f"Adding content to {name}"
    elif command == "undo_edit":
        return f"Undoing changes in {name}"
    return f"Modifying {name}"


def _file_manager_message(args: dict[str, Any]) -> str:
    operation = args.get("operation")
    if operation == "rename":
        old_name = display_name(args.get("old_path"))
        new_name = display_name(args.get("new_path"))
        return f"Renaming {old_name} to {new_name}"
    elif operation == "delete":
        return f"Deleting {display_name(args.get('path'))}"
    elif operation == "create_directory":
        return f"Creating directory {display_name(args.get('path'), placeholder='directory')}"
    elif operation == "move":
        return f"Moving {display_name(args.get('old_path') or args.get('path'))}"
    elif operation == "copy":
        return f"Copying {display_name(args.get('old_path') or args.get('path'))}"
    return "Managing files"


def generate_tool_message(tool_name: Any, args: Any) -> str:
    """
    Derive the human-readable summary of a tool call.

    Pure and total: works on partial, missing or malformed arguments and
    never raises.

    Args:
        tool_name: Name of the tool the agent called.
        args: Whatever arguments are known so far.

    Returns:
        Display text such as "Creating file App.jsx".
    """
    if not isinstance(args, dict):
        args = {}
    if tool_name == STR_REPLACE_EDITOR:
        return _editor_message(args)
    if tool_name == FILE_MANAGER:
        return _file_manager_message(args)
    return str(tool_name or "").replace("_", " ")


# =============================================================================
# Partial Arguments
# =============================================================================

_STRING_FIELD = re.compile(r'"(\w+)"\s*:\s*"((?:[^"\\]|\\.)*)"')
_NUMBER_FIELD = re.compile(r'"(\w+)"\s*:\s*(-?\d+)\s*[,}\]]')
_BOOL_FIELD = re.compile(r'"(\w+)"\s*:\s*(true|false)\b')


def parse_partial_arguments(buffer: str | None) -> dict[str, Any]:
    """
    Best-effort parse of a streamed JSON argument buffer.

    Complete JSON wins. Otherwise every string, integer or boolean field whose
    value has fully arrived is extracted; a value still being streamed is
    left out.
    """
    if not buffer:
        return {}
    try:
        parsed = json.loads(buffer)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    result: dict[str, Any] = {}
    for match in _STRING_FIELD.finditer(buffer):
        key, raw = match.groups()
        try:
            result.setdefault(key, json.loads(f'"{raw}"'))
        except json.JSONDecodeError:
            continue
    for match in _NUMBER_FIELD.finditer(buffer):
        result.setdefault(match.group(1), int(match.group(2)))
    for match in _BOOL_FIELD.finditer(buffer):
        result.setdefault(match.group(1), match.group(2) == "true")
    return result


# =============================================================================
# Completed Calls
# =============================================================================


class ToolCallInterpreter:
    """Validates completed tool calls and normalizes them to ToolOperations."""

    def __init__(self) -> None:
        self._editor_commands: dict[str, Callable[[StrReplaceEditorInput], ToolOperation]] = {
            "create": self._create,
            "str_replace": self._str_replace,
            "view": self._view,
            "insert": self._insert,
            "undo_edit": self._undo_edit,
        }
        self._file_operations: dict[str, Callable[[FileManagerInput], ToolOperation]] = {
            "rename": self._rename,
            "delete": self._delete,
            "create_directory": self._create_directory,
            "move": self._move,
            "copy": self._copy,
        }

    def interpret(self, tool_name: str, args: Any) -> ToolOperation:
        """
        Normalize a completed tool call into exactly one ToolOperation.

        Unknown tools, commands and operations produce the explicit
        unsupported variants rather than raising.

        Raises:
            MissingArgumentError: A required argument is absent.
            InvalidArgumentError: An argument has an unusable type or value.
        """
        if args is None:
            args = {}
        if not isinstance(args, dict):
            raise InvalidArgumentError("Tool arguments must be a JSON object")

        if tool_name == STR_REPLACE_EDITOR:
            return self._interpret_editor(args)
        if tool_name == FILE_MANAGER:
            return self._interpret_file_manager(args)
        return UnknownTool(tool_name=str(tool_name))

    # -------------------------------------------------------------------------
    # str_replace_editor
    # -------------------------------------------------------------------------

    def _interpret_editor(self, args: dict[str, Any]) -> ToolOperation:
        command = args.get("command")
        if command is None:
            raise MissingArgumentError("Missing required argument 'command'", argument="command")
        if command not in STR_REPLACE_COMMANDS:
            path = args.get("path")
            return UnsupportedCommand(
                command=str(command),
                path=normalize_path(path) if isinstance(path, str) and path else None,
            )
        data = self._validate(StrReplaceEditorInput, args)
        if not data.path.strip():
            raise MissingArgumentError("Missing required argument 'path'", argument="path")
        return self._editor_commands[command](data)

    def _create(self, data: StrReplaceEditorInput) -> ToolOperation:
        return CreateFile(path=normalize_path(data.path), content=data.file_text or "")

    def _str_replace(self, data: StrReplaceEditorInput) -> ToolOperation:
        path = normalize_path(data.path)
        if not data.old_str:
            raise MissingArgumentError(
                "Missing required argument 'old_str'", argument="old_str", path=path
            )
        occurrence = data.occurrence if data.occurrence is not None else 1
        if occurrence < 1:
            raise InvalidArgumentError(
                f"Invalid value for 'occurrence': {occurrence} (must be 1 or greater)",
                argument="occurrence",
                path=path,
            )
        return ReplaceContent(
            path=path,
            match=data.old_str,
            replacement=data.new_str or "",
            occurrence=occurrence,
            replace_all=bool(data.replace_all),
        )

    def _view(self, data: StrReplaceEditorInput) -> ToolOperation:
        path = normalize_path(data.path)
        view_range = None
        if data.view_range is not None:
            if len(data.view_range) != 2:
                raise InvalidArgumentError(
                    "Invalid value for 'view_range': expected [start_line, end_line]",
                    argument="view_range",
                    path=path,
                )
            view_range = (data.view_range[0], data.view_range[1])
        return ViewFile(path=path, view_range=view_range)

    def _insert(self, data: StrReplaceEditorInput) -> ToolOperation:
        path = normalize_path(data.path)
        if data.insert_line is None:
            raise MissingArgumentError(
                "Missing required argument 'insert_line'", argument="insert_line", path=path
            )
        if data.insert_line < 0:
            raise InvalidArgumentError(
                f"Invalid value for 'insert_line': {data.insert_line} (must be 0 or greater)",
                argument="insert_line",
                path=path,
            )
        text = data.insert_text if data.insert_text is not None else data.new_str
        if text is None:
            raise MissingArgumentError(
                "Missing required argument 'insert_text'", argument="insert_text", path=path
            )
        # insert_line counts the line the text goes after
        return InsertAt(path=path, line=data.insert_line + 1, text=text)

    def _undo_edit(self, data: StrReplaceEditorInput) -> ToolOperation:
        return UndoLast(path=normalize_path(data.path))

    # -------------------------------------------------------------------------
    # file_manager
    # -------------------------------------------------------------------------

    def _interpret_file_manager(self, args: dict[str, Any]) -> ToolOperation:
        operation = args.get("operation")
        if operation is None:
            raise MissingArgumentError("Missing required argument 'operation'", argument="operation")
        if operation not in FILE_MANAGER_OPERATIONS:
            return UnsupportedOperation(operation=str(operation))
        data = self._validate(FileManagerInput, args)
        return self._file_operations[operation](data)

    def _source_and_destination(self, data: FileManagerInput) -> tuple[str, str]:
        source = data.old_path or data.path
        if not source:
            raise MissingArgumentError("Missing required argument 'old_path'", argument="old_path")
        if not data.new_path:
            raise MissingArgumentError(
                "Missing required argument 'new_path'",
                argument="new_path",
                path=normalize_path(source),
            )
        return normalize_path(source), normalize_path(data.new_path)

    def _target(self, data: FileManagerInput) -> str:
        if not data.path:
            raise MissingArgumentError("Missing required argument 'path'", argument="path")
        return normalize_path(data.path)

    def _rename(self, data: FileManagerInput) -> ToolOperation:
        return Rename(*self._source_and_destination(data))

    def _move(self, data: FileManagerInput) -> ToolOperation:
        return Move(*self._source_and_destination(data))

    def _copy(self, data: FileManagerInput) -> ToolOperation:
        return Copy(*self._source_and_destination(data))

    def _delete(self, data: FileManagerInput) -> ToolOperation:
        return Delete(path=self._target(data))

    def _create_directory(self, data: FileManagerInput) -> ToolOperation:
        return CreateDirectory(path=self._target(data))

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _validate(self, schema: type[BaseModel], args: dict[str, Any]) -> Any:
        try:
            return schema.model_validate(args)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error.get("loc", ())) or None
            path = args.get("path") if isinstance(args.get("path"), str) else None
            logger.debug("Tool arguments failed validation: %s", e)
            if error.get("type") == "missing":
                raise MissingArgumentError(
                    f"Missing required argument '{field}'", argument=field, path=path
                ) from e
            raise InvalidArgumentError(
                f"Invalid value for '{field}': {error.get('msg')}", argument=field, path=path
            ) from e
