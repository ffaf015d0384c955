"""
OpenAI-compatible tool definitions for the LiveCanvas file tools.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from livecanvas.schemas import FILE_MANAGER_OPERATIONS, STR_REPLACE_COMMANDS
from livecanvas.tools.base import (
    FILE_MANAGER_DESCRIPTION,
    STR_REPLACE_EDITOR_DESCRIPTION,
    BaseToolProvider,
)
from livecanvas.types import FILE_MANAGER, STR_REPLACE_EDITOR

if TYPE_CHECKING:
    from livecanvas.session import ProjectSession


class OpenAIToolProvider(BaseToolProvider):
    """OpenAI function calling compatible tool provider for a ProjectSession."""

    def get_tool_definitions(self) -> list[dict[str, Any]]:
        """Get OpenAI function calling compatible tool definitions."""
        return [
            {
                "type": "function",
                "function": {
                    "name": STR_REPLACE_EDITOR,
                    "description": STR_REPLACE_EDITOR_DESCRIPTION,
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "command": {
                                "type": "string",
                                "enum": list(STR_REPLACE_COMMANDS),
                                "description": "The command to run.",
                            },
                            "path": {
                                "type": "string",
                                "description": "Absolute path of the file, e.g. '/App.jsx' or '/components/Button.jsx'",
                            },
                            "file_text": {
                                "type": "string",
                                "description": "Full content of the new file. Required by 'create'.",
                            },
                            "old_str": {
                                "type": "string",
                                "description": "Exact text to replace. Required by 'str_replace'.",
                            },
                            "new_str": {
                                "type": "string",
                                "description": "Replacement text for 'str_replace'.",
                            },
                            "insert_line": {
                                "type": "integer",
                                "description": "For 'insert': the text goes after this line. 0 inserts at the top.",
                            },
                            "insert_text": {
                                "type": "string",
                                "description": "Text to insert. Required by 'insert'.",
                            },
                            "view_range": {
                                "type": "array",
                                "items": {"type": "integer"},
                                "description": "Optional [start_line, end_line] for 'view'. -1 as end_line reads to the end.",
                            },
                            "occurrence": {
                                "type": "integer",
                                "description": "For 'str_replace': which occurrence of old_str to replace, starting at 1. Defaults to 1.",
                            },
                            "replace_all": {
                                "type": "boolean",
                                "description": "For 'str_replace': replace every occurrence of old_str.",
                            },
                        },
                        "required": ["command", "path"],
                    },
                },
            },
            {
                "type": "function",
                "function": {
                    "name": FILE_MANAGER,
                    "description": FILE_MANAGER_DESCRIPTION,
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "operation": {
                                "type": "string",
                                "enum": list(FILE_MANAGER_OPERATIONS),
                                "description": "The operation to run.",
                            },
                            "path": {
                                "type": "string",
                                "description": "Target path for 'delete' and 'create_directory'.",
                            },
                            "old_path": {
                                "type": "string",
                                "description": "Current path for rename, move and copy.",
                            },
                            "new_path": {
                                "type": "string",
                                "description": "Destination path for rename, move and copy.",
                            },
                        },
                        "required": ["operation"],
                    },
                },
            },
        ]

    def execute_tool(self, tool_name: str, arguments: dict[str, Any] | str) -> str:
        """
        Execute a tool call and return the result as JSON string.

        Args:
            tool_name: Name of the tool.
            arguments: Tool arguments, as a dict or the raw JSON string from
                the chat completion.

        Returns:
            JSON string result.
        """
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as e:
                return json.dumps({
                    "status": "error",
                    "message": f"Tool arguments are not valid JSON: {e.msg}",
                    "error_code": "invalid_argument",
                })

        result = self.session.execute_tool(tool_name, arguments)
        return json.dumps(result.to_dict())


def get_openai_tools(session: ProjectSession) -> list[dict[str, Any]]:
    """
    Convenience function to get OpenAI-compatible tool definitions.

    Args:
        session: The ProjectSession.

    Returns:
        List of tool definitions for OpenAI function calling.
    """
    provider = OpenAIToolProvider(session)
    return provider.get_tool_definitions()


def execute_openai_tool(
    session: ProjectSession,
    tool_name: str,
    arguments: dict[str, Any] | str,
) -> str:
    """
    Convenience function to execute an OpenAI tool call.

    Args:
        session: The ProjectSession.
        tool_name: Name of the tool.
        arguments: Tool arguments.

    Returns:
        JSON string result.
    """
    provider = OpenAIToolProvider(session)
    return provider.execute_tool(tool_name, arguments)
