"""
LangChain-compatible tool definitions for the LiveCanvas file tools.

Provides tools that can be used with LangChain agents via:
- LangChainToolProvider class for direct integration
- get_langchain_tools() convenience function

Example usage:
    from livecanvas import ProjectSession
    from livecanvas.tools.langchain_tools import get_langchain_tools

    with ProjectSession() as session:
        tools = get_langchain_tools(session)
        agent = create_react_agent(llm, tools, prompt)
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional

from livecanvas.schemas import FileManagerInput, StrReplaceEditorInput
from livecanvas.tools.base import (
    FILE_MANAGER_DESCRIPTION,
    STR_REPLACE_EDITOR_DESCRIPTION,
    BaseToolProvider,
)
from livecanvas.types import FILE_MANAGER, STR_REPLACE_EDITOR

if TYPE_CHECKING:
    from langchain_core.tools import BaseTool

    from livecanvas.session import ProjectSession


def _present(**kwargs: Any) -> dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


class LangChainToolProvider(BaseToolProvider):
    """LangChain-compatible tool provider for a ProjectSession."""

    def get_tool_definitions(self) -> list[dict[str, Any]]:
        """
        Get tool definitions as dictionaries (for compatibility with base class).

        For LangChain usage, prefer get_tools() which returns actual Tool objects.
        """
        tools = self.get_tools()
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "args_schema": tool.args_schema,
            }
            for tool in tools
        ]

    def get_tools(self) -> list[BaseTool]:
        """
        Get LangChain Tool objects for use with agents.

        Returns:
            List of LangChain StructuredTool instances.
        """
        from langchain_core.tools import StructuredTool

        return [
            StructuredTool.from_function(
                func=self._str_replace_editor,
                name=STR_REPLACE_EDITOR,
                description=STR_REPLACE_EDITOR_DESCRIPTION,
                args_schema=StrReplaceEditorInput,
            ),
            StructuredTool.from_function(
                func=self._file_manager,
                name=FILE_MANAGER,
                description=FILE_MANAGER_DESCRIPTION,
                args_schema=FileManagerInput,
            ),
        ]

    def execute_tool(self, tool_name: str, arguments: dict[str, Any]) -> str:
        """
        Execute a tool call and return the result as JSON string.

        Args:
            tool_name: Name of the tool.
            arguments: Tool arguments.

        Returns:
            JSON string result.
        """
        result = self.session.execute_tool(tool_name, arguments)
        return json.dumps(result.to_dict())

    def _str_replace_editor(
        self,
        command: str,
        path: str,
        file_text: Optional[str] = None,
        old_str: Optional[str] = None,
        new_str: Optional[str] = None,
        insert_line: Optional[int] = None,
        insert_text: Optional[str] = None,
        view_range: Optional[list[int]] = None,
        occurrence: Optional[int] = None,
        replace_all: Optional[bool] = None,
    ) -> str:
        """Create, view or edit a file."""
        return self.execute_tool(
            STR_REPLACE_EDITOR,
            _present(
                command=command,
                path=path,
                file_text=file_text,
                old_str=old_str,
                new_str=new_str,
                insert_line=insert_line,
                insert_text=insert_text,
                view_range=view_range,
                occurrence=occurrence,
                replace_all=replace_all,
            ),
        )

    def _file_manager(
        self,
        operation: str,
        path: Optional[str] = None,
        old_path: Optional[str] = None,
        new_path: Optional[str] = None,
    ) -> str:
        """Rename, move, copy or delete a path, or create a directory."""
        return self.execute_tool(
            FILE_MANAGER,
            _present(operation=operation, path=path, old_path=old_path, new_path=new_path),
        )


def get_langchain_tools(session: ProjectSession) -> list[BaseTool]:
    """
    Convenience function to get LangChain-compatible tools for a session.

    Args:
        session: The ProjectSession.

    Returns:
        List of LangChain StructuredTool instances for use with agents.
    """
    return LangChainToolProvider(session).get_tools()


def execute_langchain_tool(
    session: ProjectSession,
    tool_name: str,
    arguments: dict[str, Any],
) -> str:
    """
    Convenience function to execute a LangChain tool call.

    Args:
        session: The ProjectSession.
        tool_name: Name of the tool.
        arguments: Tool arguments.

    Returns:
        JSON string result.
    """
    return LangChainToolProvider(session).execute_tool(tool_name, arguments)
