"""
Pydantic input schemas for the two agent-facing tools.

The field names are the tool contract the model is prompted with; they are
shared by the interpreter, the OpenAI function definitions and the LangChain
StructuredTools.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

STR_REPLACE_COMMANDS = ("create", "str_replace", "view", "insert", "undo_edit")
FILE_MANAGER_OPERATIONS = ("rename", "delete", "create_directory", "move", "copy")


class StrReplaceEditorInput(BaseModel):
    """Input schema for the str_replace_editor tool."""

    model_config = ConfigDict(extra="ignore")

    command: str = Field(
        description="The command to run: create, str_replace, view, insert or undo_edit."
    )
    path: str = Field(
        description="Absolute path of the file, e.g. '/App.jsx' or '/components/Button.jsx'"
    )
    file_text: Optional[str] = Field(
        default=None,
        description="Full content of the new file. Required by 'create'.",
    )
    old_str: Optional[str] = Field(
        default=None,
        description="Exact text to replace. Required by 'str_replace'. Include surrounding context so it matches only where intended.",
    )
    new_str: Optional[str] = Field(
        default=None,
        description="Replacement text for 'str_replace' (empty deletes the match).",
    )
    insert_line: Optional[int] = Field(
        default=None,
        description="For 'insert': the new text goes after this line. 0 inserts at the top of the file.",
    )
    insert_text: Optional[str] = Field(
        default=None,
        description="Text to insert. Required by 'insert'.",
    )
    view_range: Optional[list[int]] = Field(
        default=None,
        description="Optional [start_line, end_line] for 'view'. Use -1 as end_line to read to the end.",
    )
    occurrence: Optional[int] = Field(
        default=None,
        description="Optional: which occurrence of old_str to replace (1-indexed). Defaults to the first.",
    )
    replace_all: Optional[bool] = Field(
        default=None,
        description="Optional: replace every occurrence of old_str.",
    )


class FileManagerInput(BaseModel):
    """Input schema for the file_manager tool."""

    model_config = ConfigDict(extra="ignore")

    operation: str = Field(
        description="The operation to run: rename, delete, create_directory, move or copy."
    )
    path: Optional[str] = Field(
        default=None,
        description="Target path for 'delete' and 'create_directory'; also accepted as the source for rename, move and copy.",
    )
    old_path: Optional[str] = Field(
        default=None,
        description="Current path of the file or directory for rename, move and copy.",
    )
    new_path: Optional[str] = Field(
        default=None,
        description="Destination path for rename, move and copy.",
    )
