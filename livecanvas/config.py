"""
Configuration management for LiveCanvas.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

# Provider type definitions
TranspilerProvider = Literal["passthrough", "esbuild"]
SandboxProvider = Literal["iframe", "subprocess"]
LLMProvider = Literal["openai"]

# Probed in order when an import omits its extension
DEFAULT_EXTENSIONS = (".jsx", ".tsx", ".js", ".ts")

# Probed in order when looking for the module the preview starts from
DEFAULT_ENTRY_POINTS = (
    "/App.jsx",
    "/App.tsx",
    "/index.jsx",
    "/index.tsx",
    "/src/App.jsx",
    "/src/App.tsx",
)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EditorConfig:
    """Configuration for the edit engine."""

    # Maximum number of undoable edits kept across all files
    max_history: int = 100
    include_line_numbers: bool = True
    # 0 means no limit on lines returned by view
    max_view_lines: int = 0


@dataclass
class PreviewConfig:
    """Configuration for import resolution and the preview build."""

    root_alias: str = "@/"
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    entry_points: tuple[str, ...] = DEFAULT_ENTRY_POINTS
    # Rapid bursts of edits within this window coalesce into one rebuild
    debounce_seconds: float = 0.15
    transpiler: TranspilerProvider = "passthrough"
    esbuild_path: str = "esbuild"
    # External packages are served from this CDN inside the iframe realm
    cdn_url: str = "https://esm.sh"
    babel_url: str = "https://unpkg.com/@babel/standalone/babel.min.js"
    tailwind_url: str | None = "https://cdn.tailwindcss.com"


@dataclass
class SandboxConfig:
    """Configuration for the sandbox execution boundary."""

    provider: SandboxProvider = "iframe"
    # Subprocess realm
    temp_dir_prefix: str = "livecanvas-"
    command: list[str] = field(default_factory=lambda: ["node", "{entry}"])
    timeout_seconds: float = 10.0


@dataclass
class LLMConfig:
    """Configuration for the LLM that drives the agent loop."""

    provider: LLMProvider = "openai"
    model: str = "gpt-5-mini"
    api_key: str | None = None
    # Upper bound on model round-trips per user turn
    max_steps: int = 20
    temperature: float | None = None


@dataclass
class LiveCanvasConfig:
    """Main configuration for LiveCanvas."""

    editor: EditorConfig = field(default_factory=EditorConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    sandbox: SandboxConfig = field(default_factory=SandboxConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)

    # Start the preview renderer together with the session
    preview_enabled: bool = True

    # Debug mode - enables verbose logging for diagnosing issues
    debug: bool = False

    @classmethod
    def from_env(cls) -> "LiveCanvasConfig":
        """Create configuration from environment variables."""
        config = cls()

        config.llm.api_key = os.getenv("OPENAI_API_KEY")
        if os.getenv("LIVECANVAS_MODEL"):
            config.llm.model = os.environ["LIVECANVAS_MODEL"]
        if os.getenv("LIVECANVAS_ESBUILD_PATH"):
            config.preview.esbuild_path = os.environ["LIVECANVAS_ESBUILD_PATH"]
            config.preview.transpiler = "esbuild"
        sandbox = os.getenv("LIVECANVAS_SANDBOX")
        if sandbox in ("iframe", "subprocess"):
            config.sandbox.provider = sandbox
        config.debug = _env_flag("LIVECANVAS_DEBUG")

        return config

    @classmethod
    def default_local(cls) -> "LiveCanvasConfig":
        """Create a configuration for tests and offline development.

        No debounce, so every change renders as soon as the worker runs.
        """
        return cls(
            editor=EditorConfig(),
            preview=PreviewConfig(debounce_seconds=0.0),
            sandbox=SandboxConfig(provider="iframe"),
            llm=LLMConfig(api_key=os.getenv("OPENAI_API_KEY")),
        )
