"""
Abstract base class for LiveCanvas LLM providers.

LLM providers drive the generating agent: they stream assistant text and
tool calls for a conversation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, Union

from livecanvas.types import ToolCallEvent


@dataclass
class TextDelta:
    """A fragment of assistant text."""

    text: str


StreamEvent = Union[TextDelta, ToolCallEvent]


class BaseLLM(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Return the model name being used."""
        pass

    @abstractmethod
    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> Iterator[StreamEvent]:
        """
        Stream one assistant turn.

        Tool calls are reported as pending ToolCallEvents while their
        arguments stream in (``args_delta`` carries each fragment) and as one
        completed event per call once the turn has finished.

        Args:
            messages: Chat messages with 'role' and 'content'.
            tools: Tool definitions in chat-completions function format.

        Yields:
            TextDelta and ToolCallEvent items in arrival order.
        """
        pass
