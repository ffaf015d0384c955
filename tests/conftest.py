"""Shared fixtures for LiveCanvas tests."""

import pytest

from livecanvas.config import LiveCanvasConfig
from livecanvas.engine import EditEngine
from livecanvas.vfs import ProjectTree


@pytest.fixture
def tree():
    """Create an empty project tree."""
    return ProjectTree()


@pytest.fixture
def engine(tree):
    """Create an edit engine over the tree fixture."""
    return EditEngine(tree)


@pytest.fixture
def local_config():
    """Offline configuration without debounce."""
    config = LiveCanvasConfig.default_local()
    config.llm.api_key = "test-key"
    return config
