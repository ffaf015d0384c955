"""
LiveCanvas - a virtual project tree, tool-call edit engine and live preview
for AI agents that author front-end components.

An agent edits an in-memory project through two tools (str_replace_editor and
file_manager). Every completed tool call is applied atomically and reversibly
to the tree, and each change triggers a debounced, sandboxed re-render of the
project.

Usage:
    from livecanvas import create_session

    session = create_session()

    # Feed tool calls from your chat transport
    session.execute_tool(
        "str_replace_editor",
        {"command": "create", "path": "/App.jsx", "file_text": "export default () => <h1>Hi</h1>"},
    )

    # Read the preview and the code view
    status = session.renderer.flush()
    print(status.state, session.tree.format_listing())

    session.close()

Agent loop with OpenAI:
    with ProjectSession() as session:
        reply = session.run_turn("Build a pricing card with three tiers")
"""

from livecanvas.config import LiveCanvasConfig
from livecanvas.engine import EditEngine
from livecanvas.errors import LiveCanvasError
from livecanvas.interpreter import ToolCallInterpreter, generate_tool_message
from livecanvas.preview import ImportResolver, PreviewRenderer
from livecanvas.prompts import GENERATION_SYSTEM_PROMPT, get_generation_prompt
from livecanvas.session import ProjectSession, create_session
from livecanvas.tools import execute_openai_tool, get_openai_tools
from livecanvas.types import (
    FileNode,
    NodeType,
    PreviewStatus,
    RenderState,
    ToolCallEvent,
    ToolCallPhase,
    ToolCallRecord,
    ToolResult,
)
from livecanvas.vfs import ProjectTree

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "ProjectSession",
    "ProjectTree",
    "EditEngine",
    "ToolCallInterpreter",
    "PreviewRenderer",
    "ImportResolver",
    "LiveCanvasConfig",
    "LiveCanvasError",
    # Factory functions
    "create_session",
    # Tool helpers
    "generate_tool_message",
    "get_openai_tools",
    "execute_openai_tool",
    # Prompts
    "GENERATION_SYSTEM_PROMPT",
    "get_generation_prompt",
    # Types
    "FileNode",
    "NodeType",
    "ToolCallEvent",
    "ToolCallPhase",
    "ToolCallRecord",
    "ToolResult",
    "PreviewStatus",
    "RenderState",
]
