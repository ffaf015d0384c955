"""
Subprocess realm for the LiveCanvas preview.

Materializes a bundle in a private TemporaryDirectory and runs a configured
command (``node {entry}`` by default) against it. Used for server-side
rendering checks and headless smoke tests of generated code. The directory
only lives for the duration of one build.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
import subprocess
import tempfile
import threading
import time
from tempfile import TemporaryDirectory

from livecanvas.errors import BuildCancelled, RuntimeFailure
from livecanvas.sandboxes.base import BaseSandbox, link_modules
from livecanvas.types import PreviewBundle, RenderOutput

logger = logging.getLogger(__name__)

# Written modules get this suffix so every runtime treats them as ES modules
MODULE_SUFFIX = ".mjs"

_FRAME = re.compile(
    r"(?:file://)?(?P<file>/[^\s():'\"]+?" + re.escape(MODULE_SUFFIX) + r"):(?P<line>\d+)(?::(?P<column>\d+))?"
)
_ERROR_LINE = re.compile(r"^\s*(?:\w+)?Error(?: \[\w+\])?:.*$", re.MULTILINE)


class SubprocessSandbox(BaseSandbox):
    """Runs bundles with an external command inside a TemporaryDirectory."""

    def __init__(
        self,
        command: list[str] | None = None,
        timeout: float = 10.0,
        prefix: str = "livecanvas-",
        base_dir: str | None = None,
        poll_interval: float = 0.05,
    ):
        """
        Initialize the subprocess realm.

        Args:
            command: Command line to run. "{entry}" is replaced by the path of
                the written entry module and "{root}" by the build directory.
            timeout: Seconds before the process is killed.
            prefix: Prefix for the temporary directory name.
            base_dir: Base directory for creating temp dir. None uses system default.
            poll_interval: Seconds between cancellation checks.
        """
        self.command = command or ["node", "{entry}"]
        self.timeout = timeout
        self.prefix = prefix
        self.base_dir = base_dir
        self.poll_interval = poll_interval
        self._temp_dir: TemporaryDirectory | None = None
        self._root_path: str | None = None

    @property
    def root_path(self) -> str:
        """Return the absolute root path of the build directory."""
        if self._root_path is None:
            raise RuntimeError("Sandbox not initialized. Call initialize() first.")
        return self._root_path

    def initialize(self) -> None:
        """Create a fresh build directory."""
        self._temp_dir = TemporaryDirectory(prefix=self.prefix, dir=self.base_dir)
        self._root_path = self._temp_dir.name

    def cleanup(self) -> None:
        """Remove the build directory."""
        if self._temp_dir is not None:
            self._temp_dir.cleanup()
            self._temp_dir = None
            self._root_path = None

    def _full_path(self, path: str) -> str:
        """Convert a virtual path to a path inside the build directory."""
        full = os.path.normpath(os.path.join(self.root_path, path.lstrip("/")))
        if not full.startswith(self.root_path):
            raise ValueError(f"Path '{path}' escapes sandbox")
        return full

    def write_file(self, path: str, content: str) -> str:
        full_path = self._full_path(path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "w", encoding="utf-8") as f:
            f.write(content)
        return full_path

    # =========================================================================
    # Execution
    # =========================================================================

    def _link_targets(self, importer: str, module_ids: list[str]) -> dict[str, str]:
        directory = posixpath.dirname(importer)
        targets = {}
        for module_id in module_ids:
            relative = posixpath.relpath(module_id + MODULE_SUFFIX, directory)
            targets[module_id] = relative if relative.startswith(".") else "./" + relative
        return targets

    def materialize(self, bundle: PreviewBundle) -> str:
        """
        Write every module and stylesheet into the build directory.

        Returns:
            Absolute path of the written entry module.
        """
        module_ids = list(bundle.modules)
        for module_id, code in bundle.modules.items():
            self.write_file(
                module_id + MODULE_SUFFIX,
                link_modules(code, self._link_targets(module_id, module_ids)),
            )
        for path, css in bundle.styles.items():
            self.write_file(path, css)
        return self._full_path(bundle.entry + MODULE_SUFFIX)

    def execute(
        self,
        bundle: PreviewBundle,
        cancel_event: threading.Event | None = None,
    ) -> RenderOutput:
        entry_file = self.materialize(bundle)
        command = [
            arg.replace("{entry}", entry_file).replace("{root}", self.root_path)
            for arg in self.command
        ]
        logger.debug("Running preview command %s", command)

        with tempfile.TemporaryFile(mode="w+", encoding="utf-8") as stdout, \
                tempfile.TemporaryFile(mode="w+", encoding="utf-8") as stderr:
            try:
                process = subprocess.Popen(
                    command,
                    cwd=self.root_path,
                    stdout=stdout,
                    stderr=stderr,
                    text=True,
                )
            except FileNotFoundError as e:
                raise RuntimeFailure(
                    f"Preview command not found: {command[0]}", path=bundle.entry
                ) from e

            deadline = time.monotonic() + self.timeout
            while process.poll() is None:
                if cancel_event is not None and cancel_event.is_set():
                    self._kill(process)
                    raise BuildCancelled(f"Build of version {bundle.version} was cancelled")
                if time.monotonic() > deadline:
                    self._kill(process)
                    raise RuntimeFailure(
                        f"Preview timed out after {self.timeout} seconds", path=bundle.entry
                    )
                if cancel_event is not None:
                    cancel_event.wait(self.poll_interval)
                else:
                    time.sleep(self.poll_interval)

            stdout.seek(0)
            stderr.seek(0)
            out = stdout.read()
            err = stderr.read()

        if process.returncode != 0:
            raise self._parse_failure(process.returncode, err, bundle.entry)
        return RenderOutput(version=bundle.version, entry=bundle.entry, stdout=out)

    def _kill(self, process: subprocess.Popen) -> None:
        process.kill()
        process.wait()

    def _module_id(self, file_path: str) -> str | None:
        for root in {self.root_path, os.path.realpath(self.root_path)}:
            if file_path.startswith(root + os.sep):
                relative = file_path[len(root):].replace(os.sep, "/")
                return relative[: -len(MODULE_SUFFIX)]
        return None

    def _parse_failure(self, returncode: int, stderr: str, entry: str) -> RuntimeFailure:
        message_match = _ERROR_LINE.search(stderr)
        lines = [line for line in stderr.splitlines() if line.strip()]
        if message_match:
            message = message_match.group(0).strip()
        elif lines:
            message = lines[-1].strip()
        else:
            message = f"Process exited with code {returncode}"

        for frame in _FRAME.finditer(stderr):
            module_id = self._module_id(frame.group("file"))
            if module_id is not None:
                column = frame.group("column")
                return RuntimeFailure(
                    message,
                    path=module_id,
                    line=int(frame.group("line")),
                    column=int(column) if column else None,
                )
        return RuntimeFailure(message, path=entry)
