"""Live preview: import resolution, transpiling and rendering."""

from livecanvas.preview.renderer import PreviewRenderer
from livecanvas.preview.resolver import ImportResolver
from livecanvas.preview.transpilers import (
    BaseTranspiler,
    EsbuildTranspiler,
    PassthroughTranspiler,
    create_transpiler,
)

__all__ = [
    "PreviewRenderer",
    "ImportResolver",
    "BaseTranspiler",
    "PassthroughTranspiler",
    "EsbuildTranspiler",
    "create_transpiler",
]
