"""Tests for the OpenAI streaming provider with a mocked client."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from livecanvas.llms.base import TextDelta
from livecanvas.llms.openai_llm import OpenAILLM
from livecanvas.types import ToolCallEvent, ToolCallPhase


def _chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def _tool_delta(index, arguments, call_id=None, name=None):
    return SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


@pytest.fixture
def client():
    return MagicMock()


class TestOpenAILLM:
    def test_model(self, client):
        assert OpenAILLM(client=client, model="gpt-test").model == "gpt-test"

    def test_text_stream(self, client):
        client.chat.completions.create.return_value = iter(
            [_chunk("Hello"), _chunk(" there"), SimpleNamespace(choices=[])]
        )
        llm = OpenAILLM(client=client)

        events = list(llm.stream([{"role": "user", "content": "hi"}]))

        assert events == [TextDelta("Hello"), TextDelta(" there")]
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is True
        assert "tools" not in kwargs
        assert "temperature" not in kwargs

    def test_tool_call_stream(self, client):
        client.chat.completions.create.return_value = iter(
            [
                _chunk(tool_calls=[_tool_delta(0, "", call_id="call_1", name="str_replace_editor")]),
                _chunk(tool_calls=[_tool_delta(0, '{"command": "create", ')]),
                _chunk(tool_calls=[_tool_delta(0, '"path": "/App.jsx"}')]),
                _chunk(tool_calls=[_tool_delta(1, '{"operation": "delete"', call_id="call_2", name="file_manager")]),
            ]
        )
        llm = OpenAILLM(client=client, temperature=0.2)
        tools = [{"type": "function", "function": {"name": "str_replace_editor"}}]

        events = list(llm.stream([], tools=tools))

        pending = [e for e in events if e.phase == ToolCallPhase.PENDING]
        assert [e.call_id for e in pending] == ["call_1", "call_1", "call_1", "call_2"]
        assert "".join(e.args_delta for e in pending[:3]) == '{"command": "create", "path": "/App.jsx"}'

        completed = [e for e in events if e.phase == ToolCallPhase.COMPLETED]
        assert completed == [
            ToolCallEvent(
                call_id="call_1",
                tool_name="str_replace_editor",
                phase=ToolCallPhase.COMPLETED,
                args={"command": "create", "path": "/App.jsx"},
            ),
            ToolCallEvent(
                call_id="call_2",
                tool_name="file_manager",
                phase=ToolCallPhase.COMPLETED,
                args=None,
            ),
        ]
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["tools"] == tools
        assert kwargs["temperature"] == 0.2
