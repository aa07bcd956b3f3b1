"""tui widgets."""

from .response import ResponsePanel, render_response
from .shapes import ShapeClicked, ShapeList, format_shape, render_shapes
from .spinner import Spinner

__all__ = [
    "ResponsePanel",
    "render_response",
    "ShapeClicked",
    "ShapeList",
    "format_shape",
    "render_shapes",
    "Spinner",
]
