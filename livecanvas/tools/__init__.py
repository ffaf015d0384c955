"""Tool providers for LiveCanvas agent integration."""

from livecanvas.tools.base import BaseToolProvider
from livecanvas.tools.langchain_tools import (
    LangChainToolProvider,
    execute_langchain_tool,
    get_langchain_tools,
)
from livecanvas.tools.openai_tools import (
    OpenAIToolProvider,
    execute_openai_tool,
    get_openai_tools,
)

__all__ = [
    "BaseToolProvider",
    # OpenAI
    "OpenAIToolProvider",
    "get_openai_tools",
    "execute_openai_tool",
    # LangChain
    "LangChainToolProvider",
    "get_langchain_tools",
    "execute_langchain_tool",
]
