"""
Base classes for LiveCanvas tool definitions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from livecanvas.session import ProjectSession

STR_REPLACE_EDITOR_DESCRIPTION = (
    "Create, view and edit files of the project. Commands: 'create' writes a file "
    "(overwriting any existing one), 'str_replace' replaces old_str with new_str, "
    "'insert' adds insert_text after line insert_line, 'view' shows a file with line "
    "numbers (or lists a directory) and 'undo_edit' reverts the last edit of a file."
)
FILE_MANAGER_DESCRIPTION = (
    "Manage files and directories of the project: rename, move or copy a path "
    "(old_path -> new_path), delete a path, or create a directory."
)


class BaseToolProvider(ABC):
    """Abstract base class for tool providers that generate agent-specific tool definitions."""

    def __init__(self, session: ProjectSession):
        """
        Initialize the tool provider.

        Args:
            session: The ProjectSession whose tree the tools edit.
        """
        self.session = session

    @abstractmethod
    def get_tool_definitions(self) -> list[dict[str, Any]]:
        """
        Get tool definitions in the format expected by the target agent framework.

        Returns:
            List of tool definitions.
        """
        pass

    @abstractmethod
    def execute_tool(self, tool_name: str, arguments: dict[str, Any]) -> str:
        """
        Execute a tool call and return the result.

        Args:
            tool_name: Name of the tool to execute.
            arguments: Tool arguments.

        Returns:
            String result to return to the agent.
        """
        pass
