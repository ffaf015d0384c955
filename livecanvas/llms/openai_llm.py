"""
OpenAI LLM provider for LiveCanvas.

Streams chat completions with function calling and converts the chunks into
TextDelta and ToolCallEvent items.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator

from openai import OpenAI

from livecanvas.llms.base import BaseLLM, StreamEvent, TextDelta
from livecanvas.types import ToolCallEvent, ToolCallPhase

logger = logging.getLogger(__name__)


class OpenAILLM(BaseLLM):
    """OpenAI-based LLM provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-5-mini",
        temperature: float | None = None,
        client: OpenAI | None = None,
    ):
        """
        Initialize OpenAI LLM.

        Args:
            api_key: OpenAI API key. If None, uses OPENAI_API_KEY env var.
            model: The model to use for completions.
            temperature: Sampling temperature. None leaves the model default
                (some models don't support it).
            client: Pre-built OpenAI client, e.g. for a custom base URL.
        """
        self.client = client or OpenAI(api_key=api_key)
        self._model = model
        self.temperature = temperature

    @property
    def model(self) -> str:
        """Return the model name being used."""
        return self._model

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> Iterator[StreamEvent]:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "stream": True,
        }
        if tools:
            kwargs["tools"] = tools
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature

        response = self.client.chat.completions.create(**kwargs)

        # Tool calls arrive as fragments keyed by their index in the turn
        calls: dict[int, dict[str, str]] = {}
        for chunk in response:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta is None:
                continue

            if delta.content:
                yield TextDelta(delta.content)

            for tool_call in delta.tool_calls or []:
                function = tool_call.function
                entry = calls.get(tool_call.index)
                if entry is None:
                    entry = {
                        "id": tool_call.id or f"call_{tool_call.index}",
                        "name": (function.name if function else None) or "",
                        "arguments": "",
                    }
                    calls[tool_call.index] = entry
                else:
                    if tool_call.id:
                        entry["id"] = tool_call.id
                    if function and function.name:
                        entry["name"] = function.name

                fragment = (function.arguments if function else None) or ""
                entry["arguments"] += fragment
                yield ToolCallEvent(
                    call_id=entry["id"],
                    tool_name=entry["name"],
                    phase=ToolCallPhase.PENDING,
                    args_delta=fragment,
                )

        for index in sorted(calls):
            entry = calls[index]
            try:
                args = json.loads(entry["arguments"]) if entry["arguments"] else {}
            except json.JSONDecodeError:
                logger.warning("Tool call %s streamed invalid JSON arguments", entry["id"])
                args = None
            yield ToolCallEvent(
                call_id=entry["id"],
                tool_name=entry["name"],
                phase=ToolCallPhase.COMPLETED,
                args=args if isinstance(args, dict) else None,
            )
