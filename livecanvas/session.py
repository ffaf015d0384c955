"""
ProjectSession - the per-conversation owner of the LiveCanvas core.

A session owns the project tree, the edit engine, the tool-call interpreter,
the preview renderer and the ordered record of every tool call the agent has
made. Tool-call events from the chat transport are fed in through
``handle_event`` (or the begin/append/complete methods); completed calls are
applied one at a time in completion order.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from typing import Any

from livecanvas.config import LiveCanvasConfig
from livecanvas.engine import EditEngine
from livecanvas.errors import InvalidArgumentError, LiveCanvasError
from livecanvas.interpreter import (
    ToolCallInterpreter,
    generate_tool_message,
    parse_partial_arguments,
)
from livecanvas.llms.base import BaseLLM, TextDelta
from livecanvas.preview.renderer import PreviewRenderer
from livecanvas.preview.transpilers import BaseTranspiler
from livecanvas.prompts import get_generation_prompt
from livecanvas.sandboxes.base import BaseSandbox
from livecanvas.sandboxes.iframe_sandbox import IframeSandbox
from livecanvas.sandboxes.subprocess_sandbox import SubprocessSandbox
from livecanvas.types import (
    PreviewStatus,
    ToolCallEvent,
    ToolCallPhase,
    ToolCallRecord,
    ToolResult,
)
from livecanvas.vfs import ProjectTree

logger = logging.getLogger(__name__)


def configure_debug_logging() -> None:
    """Send DEBUG output of every livecanvas logger to stderr."""
    package_logger = logging.getLogger("livecanvas")
    package_logger.setLevel(logging.DEBUG)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[LiveCanvas %(levelname)s] %(name)s: %(message)s"))
        package_logger.addHandler(handler)


class ProjectSession:
    """
    LiveCanvas session - a virtual project edited by an agent and previewed live.

    Single writer: completed tool calls are applied under one lock, in the
    order they complete.
    """

    def __init__(
        self,
        config: LiveCanvasConfig | None = None,
        tree: ProjectTree | None = None,
        sandbox: BaseSandbox | None = None,
        transpiler: BaseTranspiler | None = None,
        llm: BaseLLM | None = None,
        system_prompt: str | None = None,
    ):
        """
        Initialize a session.

        Args:
            config: LiveCanvas configuration. Uses from_env() if not provided.
            tree: Existing project tree, e.g. restored from a snapshot.
            sandbox: Custom preview realm.
            transpiler: Custom module transpiler.
            llm: Custom LLM implementation for run_turn().
            system_prompt: Overrides the default generation prompt.
        """
        self.config = config or LiveCanvasConfig.from_env()
        if self.config.debug:
            configure_debug_logging()

        self.tree = tree or ProjectTree(max_history=self.config.editor.max_history)
        self.engine = EditEngine(self.tree, self.config.editor)
        self.interpreter = ToolCallInterpreter()
        self.renderer: PreviewRenderer | None = None
        if self.config.preview_enabled:
            self.renderer = PreviewRenderer(
                self.tree,
                self.config.preview,
                sandbox=sandbox or self._create_sandbox(),
                transpiler=transpiler,
            )

        self._llm = llm
        self.system_prompt = system_prompt or get_generation_prompt(self.config.preview.root_alias)
        self.messages: list[dict[str, Any]] = [{"role": "system", "content": self.system_prompt}]

        self._tool_calls: dict[str, ToolCallRecord] = {}
        self._records_lock = threading.Lock()
        self._apply_lock = threading.Lock()
        self._initialized = False

    def _create_sandbox(self) -> BaseSandbox:
        """Create sandbox based on config."""
        if self.config.sandbox.provider == "subprocess":
            return SubprocessSandbox(
                command=list(self.config.sandbox.command),
                timeout=self.config.sandbox.timeout_seconds,
                prefix=self.config.sandbox.temp_dir_prefix,
            )
        return IframeSandbox(
            cdn_url=self.config.preview.cdn_url,
            babel_url=self.config.preview.babel_url,
            tailwind_url=self.config.preview.tailwind_url,
        )

    def _create_llm(self) -> BaseLLM:
        """Create LLM based on config."""
        if self.config.llm.provider == "openai":
            from livecanvas.llms.openai_llm import OpenAILLM

            logger.debug("Creating OpenAILLM with model=%s", self.config.llm.model)
            return OpenAILLM(
                api_key=self.config.llm.api_key,
                model=self.config.llm.model,
                temperature=self.config.llm.temperature,
            )
        raise ValueError(f"Unsupported LLM provider: {self.config.llm.provider}")

    @property
    def llm(self) -> BaseLLM:
        if self._llm is None:
            self._llm = self._create_llm()
        return self._llm

    @classmethod
    def from_snapshot(
        cls,
        data: dict[str, Any],
        config: LiveCanvasConfig | None = None,
        **kwargs: Any,
    ) -> "ProjectSession":
        """Create a session whose tree is restored from a persisted snapshot."""
        config = config or LiveCanvasConfig.from_env()
        tree = ProjectTree.from_snapshot(data, max_history=config.editor.max_history)
        return cls(config=config, tree=tree, **kwargs)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> None:
        """Start the live preview."""
        if self._initialized:
            return
        if self.renderer is not None:
            self.renderer.attach()
        self._initialized = True

    def close(self) -> None:
        """Stop the live preview. The tree stays readable."""
        if self.renderer is not None:
            self.renderer.close()
        self._initialized = False

    def __enter__(self) -> "ProjectSession":
        """Context manager entry."""
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    # =========================================================================
    # Tool Calls
    # =========================================================================

    @property
    def tool_calls(self) -> list[ToolCallRecord]:
        """Every tool call of the session in the order it started."""
        with self._records_lock:
            return list(self._tool_calls.values())

    def get_tool_call(self, call_id: str) -> ToolCallRecord | None:
        with self._records_lock:
            return self._tool_calls.get(call_id)

    def begin_tool_call(
        self,
        call_id: str,
        tool_name: str,
        args: dict[str, Any] | None = None,
    ) -> ToolCallRecord:
        """Register a tool call that started streaming. Never mutates the tree."""
        with self._records_lock:
            record = self._tool_calls.get(call_id)
            if record is None:
                record = ToolCallRecord(call_id=call_id, tool_name=tool_name)
                self._tool_calls[call_id] = record
            if args:
                record.args = dict(args)
            record.message = generate_tool_message(record.tool_name, record.args)
        return record

    def append_tool_call(self, call_id: str, delta: str | dict[str, Any] | None) -> ToolCallRecord:
        """
        Add streamed arguments to a pending call and refresh its display message.

        Args:
            call_id: The call to update.
            delta: Either the next fragment of the JSON argument text, or a
                dict with the arguments known so far.
        """
        with self._records_lock:
            record = self._tool_calls.get(call_id)
            if record is None:
                record = ToolCallRecord(call_id=call_id, tool_name="")
                self._tool_calls[call_id] = record
            if record.is_completed or delta is None:
                return record
            if isinstance(delta, dict):
                record.args = dict(delta)
            else:
                record.raw_arguments += delta
                record.args = parse_partial_arguments(record.raw_arguments)
            record.message = generate_tool_message(record.tool_name, record.args)
        return record

    def complete_tool_call(
        self,
        call_id: str,
        args: dict[str, Any] | None = None,
        tool_name: str | None = None,
    ) -> ToolCallRecord:
        """
        Validate and apply a completed tool call.

        Completing a call that is already completed returns its record
        unchanged. Failures become an error result on the record; they are
        never raised.
        """
        record = self.get_tool_call(call_id) or self.begin_tool_call(call_id, tool_name or "")
        if tool_name and not record.tool_name:
            record.tool_name = tool_name

        with self._apply_lock:
            if record.is_completed:
                return record
            try:
                if args is None:
                    args = self._final_arguments(record)
                operation = self.interpreter.interpret(record.tool_name, args)
                record.kind = operation.kind
                result = self.engine.apply(operation)
            except LiveCanvasError as e:
                logger.info("Tool call %s rejected: %s", call_id, e.message)
                result = ToolResult(
                    status="error", message=e.message, data=e.to_dict(), error_code=e.code
                )

            with self._records_lock:
                if isinstance(args, dict):
                    record.args = args
                record.message = generate_tool_message(record.tool_name, record.args)
                record.result = result
                record.phase = ToolCallPhase.COMPLETED
                record.completed_at = time.time()

        logger.debug("%s -> %s: %s", record.message, result.status, result.message)
        return record

    def _final_arguments(self, record: ToolCallRecord) -> dict[str, Any]:
        if not record.raw_arguments:
            return record.args
        try:
            args = json.loads(record.raw_arguments)
        except json.JSONDecodeError as e:
            raise InvalidArgumentError(f"Tool arguments are not valid JSON: {e.msg}") from e
        if not isinstance(args, dict):
            raise InvalidArgumentError("Tool arguments must be a JSON object")
        return args

    def handle_event(self, event: ToolCallEvent) -> ToolCallRecord:
        """Feed one transport event into the tool-call state machine."""
        if event.phase == ToolCallPhase.COMPLETED:
            return self.complete_tool_call(event.call_id, args=event.args, tool_name=event.tool_name)

        record = self.begin_tool_call(event.call_id, event.tool_name)
        if event.args:
            record = self.append_tool_call(event.call_id, event.args)
        if event.args_delta:
            record = self.append_tool_call(event.call_id, event.args_delta)
        return record

    def execute_tool(self, tool_name: str, arguments: dict[str, Any] | None) -> ToolResult:
        """Run a whole tool call at once (no streaming) and return its result."""
        call_id = f"call_{uuid.uuid4().hex[:12]}"
        self.begin_tool_call(call_id, tool_name, arguments if isinstance(arguments, dict) else None)
        return self.complete_tool_call(call_id, args=arguments if arguments is not None else {}).result

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def version(self) -> int:
        return self.tree.version

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Serialize the project tree for persistence."""
        return self.tree.snapshot()

    def preview_status(self) -> PreviewStatus | None:
        return self.renderer.status() if self.renderer is not None else None

    def get_tool_provider(self, provider: str = "openai"):
        """
        Get a tool provider bound to this session.

        Args:
            provider: "openai" or "langchain".
        """
        if provider == "openai":
            from livecanvas.tools.openai_tools import OpenAIToolProvider

            return OpenAIToolProvider(self)
        elif provider == "langchain":
            from livecanvas.tools.langchain_tools import LangChainToolProvider

            return LangChainToolProvider(self)
        else:
            raise ValueError(
                f"Unknown tool provider: {provider}. Supported: 'openai', 'langchain'"
            )

    # =========================================================================
    # Agent Loop
    # =========================================================================

    def run_turn(self, prompt: str) -> str:
        """
        Run one user turn of the agent loop.

        The model is called repeatedly, applying its tool calls and feeding
        their results back, until it answers without calling a tool or
        ``LLMConfig.max_steps`` is reached.

        Returns:
            The assistant's final text.
        """
        tools = self.get_tool_provider("openai").get_tool_definitions()
        self.messages.append({"role": "user", "content": prompt})

        text = ""
        for step in range(self.config.llm.max_steps):
            parts: list[str] = []
            completed: list[ToolCallRecord] = []
            for event in self.llm.stream(self.messages, tools=tools):
                if isinstance(event, TextDelta):
                    parts.append(event.text)
                    continue
                record = self.handle_event(event)
                if event.phase == ToolCallPhase.COMPLETED:
                    completed.append(record)

            text = "".join(parts)
            assistant: dict[str, Any] = {"role": "assistant", "content": text or None}
            if completed:
                assistant["tool_calls"] = [
                    {
                        "id": record.call_id,
                        "type": "function",
                        "function": {
                            "name": record.tool_name,
                            "arguments": record.raw_arguments or json.dumps(record.args),
                        },
                    }
                    for record in completed
                ]
            self.messages.append(assistant)

            if not completed:
                return text

            for record in completed:
                self.messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": record.call_id,
                        "content": json.dumps(record.result.to_dict()),
                    }
                )
            logger.debug("Step %d applied %d tool call(s)", step + 1, len(completed))

        logger.warning("Agent turn stopped after %d steps", self.config.llm.max_steps)
        return text


def create_session(
    config: LiveCanvasConfig | None = None,
    snapshot: dict[str, Any] | None = None,
) -> ProjectSession:
    """
    Create and initialize a new ProjectSession.

    Args:
        config: Optional configuration. Uses from_env() if not provided.
        snapshot: Optional persisted tree to start from.

    Returns:
        Initialized ProjectSession with the live preview running.
    """
    if snapshot is not None:
        session = ProjectSession.from_snapshot(snapshot, config=config)
    else:
        session = ProjectSession(config=config)
    session.initialize()
    return session
