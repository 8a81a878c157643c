"""OpenCV display surface."""

from maskview.display.window import DisplaySurface


__all__ = [
    "DisplaySurface",
]
