"""LLM providers that drive the LiveCanvas agent loop."""

from livecanvas.llms.base import BaseLLM, StreamEvent, TextDelta
from livecanvas.llms.openai_llm import OpenAILLM

__all__ = ["BaseLLM", "StreamEvent", "TextDelta", "OpenAILLM"]
