"""
maskview
========

Live visual-debugging overlay for masked camera streams.

Subscribes to an image stream whose fourth channel carries a mask,
blends that mask into the color image, shows the result in an OpenCV
window, and saves the displayed frame to a numbered file on left-click.

Components:
    - stream: Frame model, decoding, buffering and websocket subscription
    - overlay: Frame compositor, snapshot controller and their shared state
    - display: OpenCV window surface

Example:
    $ maskview --topic /camera/image_masked
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
