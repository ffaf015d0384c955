"""
Abstract base class for LiveCanvas preview sandboxes.

A sandbox is the execution boundary for generated code: it receives a
PreviewBundle and produces a RenderOutput, or raises.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from typing import Mapping

from livecanvas.types import PreviewBundle, RenderOutput


def link_modules(code: str, targets: Mapping[str, str]) -> str:
    """
    Replace double-quoted module ids in code with their link targets.

    The renderer writes every local import as a double-quoted module id, so
    exact string replacement is enough.
    """
    for module_id, target in targets.items():
        code = code.replace(
            json.dumps(module_id, ensure_ascii=False), json.dumps(target, ensure_ascii=False)
        )
    return code


class BaseSandbox(ABC):
    """Abstract base class for preview execution realms."""

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the realm for one build."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Tear down everything initialize() created."""
        pass

    @abstractmethod
    def execute(
        self,
        bundle: PreviewBundle,
        cancel_event: threading.Event | None = None,
    ) -> RenderOutput:
        """
        Run a bundle inside the realm.

        Args:
            bundle: Modules, styles and external packages of one build.
            cancel_event: Set when a newer tree version supersedes this build.

        Returns:
            Handle to the rendered output.

        Raises:
            RuntimeFailure: If generated code fails inside the realm.
            BuildCancelled: If cancel_event was set while running.
        """
        pass

    def run(
        self,
        bundle: PreviewBundle,
        cancel_event: threading.Event | None = None,
    ) -> RenderOutput:
        """Initialize, execute and clean up, whatever the outcome."""
        self.initialize()
        try:
            return self.execute(bundle, cancel_event)
        finally:
            self.cleanup()
