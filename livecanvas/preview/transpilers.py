"""
Transpilers turn component source (JSX/TSX) into plain ES modules.
"""

from __future__ import annotations

import logging
import re
import subprocess
from abc import ABC, abstractmethod

from livecanvas.errors import BuildFailure
from livecanvas.paths import extension

logger = logging.getLogger(__name__)

_LOADERS = {
    ".jsx": "jsx",
    ".tsx": "tsx",
    ".js": "jsx",
    ".mjs": "js",
    ".ts": "ts",
}

# esbuild reports "<stdin>:3:14: ERROR: Expected ..." (or with the sourcefile name)
_DIAGNOSTIC = re.compile(
    r"^(?:✘ \[ERROR\] )?(?P<file>[^\s:]+):(?P<line>\d+):(?P<column>\d+): (?:error|ERROR): (?P<message>.+)$",
    re.MULTILINE,
)
_ERROR_LINE = re.compile(r"(?:✘ \[ERROR\]|error:|ERROR:)\s*(?P<message>.+)")
_LOCATION = re.compile(r"^\s*(?P<file>[^\s:]+):(?P<line>\d+):(?P<column>\d+):\s*$", re.MULTILINE)


class BaseTranspiler(ABC):
    """Abstract base class for module transpilers."""

    # True when the realm still has to compile JSX/TS itself
    needs_realm_transform: bool = False

    @abstractmethod
    def transform(self, path: str, source: str) -> str:
        """
        Compile one module.

        Args:
            path: Virtual path of the module (selects the loader).
            source: Module source.

        Returns:
            ES module code.

        Raises:
            BuildFailure: If the module cannot be compiled.
        """
        pass


class PassthroughTranspiler(BaseTranspiler):
    """Leaves source untouched; JSX is compiled in the browser by Babel standalone."""

    needs_realm_transform = True

    def transform(self, path: str, source: str) -> str:
        return source


class EsbuildTranspiler(BaseTranspiler):
    """Compiles modules with the esbuild command line tool."""

    def __init__(self, executable: str = "esbuild", timeout: float = 30.0, jsx: str = "automatic"):
        """
        Initialize the esbuild transpiler.

        Args:
            executable: Path or name of the esbuild binary.
            timeout: Seconds to wait for one transform.
            jsx: esbuild JSX mode ("automatic" or "transform").
        """
        self.executable = executable
        self.timeout = timeout
        self.jsx = jsx

    def _command(self, path: str) -> list[str]:
        return [
            self.executable,
            f"--loader={_LOADERS.get(extension(path), 'jsx')}",
            "--format=esm",
            f"--jsx={self.jsx}",
            f"--sourcefile={path}",
            "--log-level=error",
        ]

    def transform(self, path: str, source: str) -> str:
        try:
            result = subprocess.run(
                self._command(path),
                input=source,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise BuildFailure(
                f"esbuild executable not found: {self.executable}", path=path
            ) from e
        except subprocess.TimeoutExpired as e:
            raise BuildFailure(
                f"esbuild timed out after {self.timeout} seconds while compiling {path}",
                path=path,
            ) from e

        if result.returncode != 0:
            raise self._parse_failure(path, result.stderr)
        logger.debug("Compiled %s with esbuild (%d bytes)", path, len(result.stdout))
        return result.stdout

    def _parse_failure(self, path: str, stderr: str) -> BuildFailure:
        stderr = stderr or ""
        match = _DIAGNOSTIC.search(stderr)
        if match:
            return BuildFailure(
                f"{path}:{match.group('line')}:{match.group('column')}: {match.group('message').strip()}",
                path=path,
                line=int(match.group("line")),
                column=int(match.group("column")),
            )

        # Pretty format: "✘ [ERROR] message" followed by an indented "file:line:col:" line
        message_match = _ERROR_LINE.search(stderr)
        location = _LOCATION.search(stderr)
        message = message_match.group("message").strip() if message_match else (
            stderr.strip().splitlines()[0] if stderr.strip() else "esbuild failed"
        )
        if location:
            return BuildFailure(
                f"{path}:{location.group('line')}:{location.group('column')}: {message}",
                path=path,
                line=int(location.group("line")),
                column=int(location.group("column")),
            )
        return BuildFailure(f"{path}: {message}", path=path)


def create_transpiler(provider: str, esbuild_path: str = "esbuild") -> BaseTranspiler:
    """Create the transpiler named by PreviewConfig.transpiler."""
    if provider == "esbuild":
        return EsbuildTranspiler(executable=esbuild_path)
    if provider == "passthrough":
        return PassthroughTranspiler()
    raise ValueError(f"Unsupported transpiler provider: {provider}")
