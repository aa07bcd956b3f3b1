"""whiteboard agent: turn free-form text into shape edits on a shared canvas."""

__version__ = "0.1.0"
