"""Sandbox realms for the LiveCanvas preview."""

from livecanvas.sandboxes.base import BaseSandbox
from livecanvas.sandboxes.iframe_sandbox import IframeSandbox
from livecanvas.sandboxes.subprocess_sandbox import SubprocessSandbox

__all__ = ["BaseSandbox", "IframeSandbox", "SubprocessSandbox"]
