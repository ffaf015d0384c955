"""
Sandbox Preview Renderer.

Watches a ProjectTree and, after each change, rebuilds and renders the
project inside a sandbox. The renderer never writes to the tree.

State machine: idle -> building -> rendered | failed. The renderer is idle at
start and whenever the tree has no entry module. A failed build keeps the
last successfully rendered output so the preview surface can keep showing it.

Rebuilds are debounced and run on a worker thread. A newer tree version
cancels the build in flight, and a build that finishes after being
superseded is discarded.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from typing import Callable, Mapping

from livecanvas.config import PreviewConfig
from livecanvas.errors import BuildCancelled, PreviewFailure
from livecanvas.paths import extension
from livecanvas.preview.resolver import SOURCE_EXTENSIONS, ImportResolver
from livecanvas.preview.transpilers import BaseTranspiler, create_transpiler
from livecanvas.sandboxes.base import BaseSandbox
from livecanvas.sandboxes.iframe_sandbox import IframeSandbox
from livecanvas.types import (
    PreviewBundle,
    PreviewError,
    PreviewStatus,
    RenderOutput,
    RenderState,
)
from livecanvas.vfs import ProjectTree

logger = logging.getLogger(__name__)

StatusListener = Callable[[PreviewStatus], None]

# Stylesheets are injected by the realm, so their import statements are dropped
_CSS_IMPORT = re.compile(r"""^[ \t]*import\s*['"][^'"\n]+\.css['"][ \t]*;?[ \t]*$""", re.MULTILINE)
_ENTRY_EXTENSIONS = (".jsx", ".tsx")


class PreviewRenderer:
    """Debounced, cancellable live preview of a ProjectTree."""

    def __init__(
        self,
        tree: ProjectTree,
        config: PreviewConfig | None = None,
        sandbox: BaseSandbox | None = None,
        transpiler: BaseTranspiler | None = None,
        on_update: StatusListener | None = None,
    ):
        """
        Initialize the renderer.

        Args:
            tree: The tree to preview.
            config: Preview configuration. Uses defaults if not provided.
            sandbox: Execution realm. Defaults to an IframeSandbox.
            transpiler: Module transpiler. Defaults to the configured provider.
            on_update: Called with the new PreviewStatus after every change
                of state.
        """
        self.tree = tree
        self.config = config or PreviewConfig()
        self.sandbox = sandbox or IframeSandbox(
            cdn_url=self.config.cdn_url,
            babel_url=self.config.babel_url,
            tailwind_url=self.config.tailwind_url,
        )
        self.transpiler = transpiler or create_transpiler(
            self.config.transpiler, self.config.esbuild_path
        )
        self._listeners: list[StatusListener] = [on_update] if on_update else []

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._build_lock = threading.Lock()

        self._state = RenderState.IDLE
        self._version = tree.version
        self._output: RenderOutput | None = None
        self._error: PreviewError | None = None

        self._timer: threading.Timer | None = None
        self._pending_version: int | None = None
        self._cancel: threading.Event | None = None
        self._active = 0
        self._unsubscribe: Callable[[], None] | None = None
        self._closed = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def attach(self) -> None:
        """Subscribe to tree changes and schedule an initial render."""
        if self._unsubscribe is None:
            self._unsubscribe = self.tree.subscribe(self.notify)
        self.notify(self.tree.version)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def close(self) -> None:
        """Stop watching the tree and cancel any scheduled or running build."""
        self.detach()
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_version = None
            if self._cancel is not None:
                self._cancel.set()
            self._idle.notify_all()

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    # =========================================================================
    # Scheduling
    # =========================================================================

    def notify(self, version: int) -> None:
        """
        Record a new tree version and (re)start the debounce timer.

        Any build in flight is cancelled since its result would be stale.
        """
        with self._lock:
            if self._closed:
                return
            self._pending_version = version
            if self._cancel is not None:
                self._cancel.set()
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(
                max(self.config.debounce_seconds, 0.0), self._run_pending
            )
            self._timer.daemon = True
            self._timer.start()

    def _run_pending(self) -> None:
        with self._lock:
            if self._timer is threading.current_thread():
                self._timer = None
            if self._closed or self._pending_version is None:
                self._idle.notify_all()
                return
            self._pending_version = None
            cancel = threading.Event()
            self._cancel = cancel
            self._active += 1
        try:
            with self._build_lock:
                if not cancel.is_set():
                    self._render(cancel)
        finally:
            with self._lock:
                self._active -= 1
                self._idle.notify_all()

    def render_now(self) -> PreviewStatus:
        """Build and render the current tree synchronously."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_version = None
            if self._cancel is not None:
                self._cancel.set()
            cancel = threading.Event()
            self._cancel = cancel
        with self._build_lock:
            self._render(cancel)
        return self.status()

    def flush(self, timeout: float | None = None) -> PreviewStatus:
        """Run any debounced build now and wait until no build is in flight."""
        with self._lock:
            pending = self._timer is not None and not self._closed
        if pending:
            self.render_now()
        with self._idle:
            self._idle.wait_for(
                lambda: self._active == 0 and self._timer is None, timeout=timeout
            )
        return self.status()

    # =========================================================================
    # Building
    # =========================================================================

    def find_entry(self, files: Mapping[str, str]) -> str | None:
        """Pick the module the preview starts from."""
        for candidate in self.config.entry_points:
            if candidate in files:
                return candidate
        for path in files:
            if extension(path) in _ENTRY_EXTENSIONS:
                return path
        return None

    def build(
        self,
        version: int | None = None,
        files: Mapping[str, str] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PreviewBundle | None:
        """
        Resolve, transpile and link the project into a PreviewBundle.

        Args:
            version: Tree version the files belong to.
            files: Consistent {path: content} view. Read from the tree if omitted.
            cancel_event: Checked between modules.

        Returns:
            The bundle, or None if the tree has no entry module.

        Raises:
            ResolutionError, CyclicDependencyError, BuildFailure, BuildCancelled
        """
        if files is None:
            version, files = self.tree.read_consistent()
        entry = self.find_entry(files)
        if entry is None:
            return None

        resolver = ImportResolver(
            files, root_alias=self.config.root_alias, extensions=self.config.extensions
        )
        modules: dict[str, str] = {}
        styles: dict[str, str] = {}
        external: list[str] = []

        for path in resolver.closure(entry):
            if cancel_event is not None and cancel_event.is_set():
                raise BuildCancelled(f"Build of version {version} was cancelled")
            ext = extension(path)
            if ext == ".css":
                styles[path] = files[path]
            elif ext == ".json":
                modules[path] = f"export default {files[path].strip() or 'null'};\n"
            elif ext not in SOURCE_EXTENSIONS:
                modules[path] = f"export default {json.dumps(files[path])};\n"
            else:
                source = _CSS_IMPORT.sub("", files[path])
                source = resolver.rewrite_imports(source, path)
                modules[path] = self.transpiler.transform(path, source)
                for specifier in resolver.external_imports(path):
                    if extension(specifier) != ".css" and specifier not in external:
                        external.append(specifier)

        logger.debug("Built version %s: %d modules from %s", version, len(modules), entry)
        return PreviewBundle(
            version=version if version is not None else self.tree.version,
            entry=entry,
            modules=modules,
            styles=styles,
            external=external,
            needs_transform=self.transpiler.needs_realm_transform,
        )

    def _render(self, cancel: threading.Event) -> None:
        version, files = self.tree.read_consistent()
        if self.find_entry(files) is None:
            self._finish(cancel, RenderState.IDLE, version, clear_output=True)
            return
        self._finish(cancel, RenderState.BUILDING, version)

        output = None
        error = None
        try:
            bundle = self.build(version, files, cancel)
            output = self.sandbox.run(bundle, cancel)
        except BuildCancelled:
            logger.debug("Discarding cancelled build of version %d", version)
            return
        except PreviewFailure as e:
            error = PreviewError(
                message=e.message, kind=e.code, path=e.path, line=e.line, column=e.column
            )
        except Exception as e:
            logger.exception("Preview sandbox failed for version %d", version)
            error = PreviewError(message=str(e) or type(e).__name__, kind="runtime_failure")

        if error is not None:
            logger.warning("Preview of version %d failed: %s", version, error.message)
            self._finish(cancel, RenderState.FAILED, version, error=error)
        else:
            self._finish(cancel, RenderState.RENDERED, version, output=output)

    # =========================================================================
    # State
    # =========================================================================

    def _finish(
        self,
        cancel: threading.Event | None,
        state: RenderState,
        version: int,
        output: RenderOutput | None = None,
        error: PreviewError | None = None,
        clear_output: bool = False,
    ) -> None:
        with self._lock:
            # Superseded by a newer version
            if cancel is not None and cancel.is_set():
                return
            self._state = state
            self._version = version
            if clear_output:
                self._output = None
            if output is not None:
                self._output = output
            if state != RenderState.BUILDING:
                self._error = error
            status = self._status_locked()
        self._emit(status)

    def report_runtime_error(
        self,
        version: int,
        message: str,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> bool:
        """
        Record an error raised by generated code after it was rendered.

        Reports for any version other than the one currently shown are stale
        and ignored.

        Returns:
            True if the report moved the renderer to failed.
        """
        with self._lock:
            if self._state != RenderState.RENDERED or version != self._version:
                logger.debug("Ignoring stale runtime error for version %d", version)
                return False
            self._state = RenderState.FAILED
            self._error = PreviewError(
                message=message, kind="runtime_failure", path=path, line=line, column=column
            )
            status = self._status_locked()
        self._emit(status)
        return True

    def _status_locked(self) -> PreviewStatus:
        return PreviewStatus(
            state=self._state, version=self._version, output=self._output, error=self._error
        )

    def status(self) -> PreviewStatus:
        with self._lock:
            return self._status_locked()

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def last_output(self) -> RenderOutput | None:
        return self._output

    def _emit(self, status: PreviewStatus) -> None:
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Preview listener %r failed", listener)
