"""
Display Surface
===============

One OpenCV window showing the composited overlay.

Threading:
    present() may be called from any thread; it only stores the newest
    image. pump() must run on the UI thread: it draws the pending image
    and runs cv2.waitKey, which is also where mouse callbacks fire.
"""

import logging
import threading
from typing import Callable, Optional

import cv2
import numpy as np


logger = logging.getLogger(__name__)


MouseCallback = Callable[[int, int, int, int, Optional[object]], None]


class DisplaySurface:
    """
    Named window with a fixed size policy.

    Attributes:
        window_name: Title and handle of the window
        autosize: Lock window size to the image (True) or let the user resize
    """

    def __init__(self, window_name: str, autosize: bool = False) -> None:
        self.window_name = window_name
        self.autosize = autosize

        self._lock = threading.Lock()
        self._pending: Optional[np.ndarray] = None
        self._opened: bool = False

    @property
    def opened(self) -> bool:
        return self._opened

    def open(self, on_mouse: Optional[MouseCallback] = None) -> None:
        """Create the window and bind the mouse listener to it."""
        flags = cv2.WINDOW_AUTOSIZE if self.autosize else cv2.WINDOW_NORMAL
        cv2.namedWindow(self.window_name, flags)
        if on_mouse is not None:
            cv2.setMouseCallback(self.window_name, on_mouse)
        self._opened = True
        logger.info(
            f"Opened window {self.window_name!r} "
            f"({'autosize' if self.autosize else 'resizable'})"
        )

    def present(self, image: np.ndarray) -> None:
        """Queue an image for the next pump(); newer images replace older ones."""
        with self._lock:
            self._pending = image

    def pump(self, delay_ms: int = 10) -> int:
        """
        Draw the pending image and process window events.

        Returns:
            Key code from cv2.waitKey (masked to 8 bits), or -1 for none
        """
        with self._lock:
            image, self._pending = self._pending, None

        if image is not None:
            cv2.imshow(self.window_name, image)

        key = cv2.waitKey(delay_ms)
        return key & 0xFF if key >= 0 else -1

    def is_open(self) -> bool:
        """False once the window has been closed by the operator."""
        if not self._opened:
            return False
        try:
            visible = cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE)
        except cv2.error:
            return False
        return visible >= 1

    def close(self) -> None:
        if not self._opened:
            return
        self._opened = False
        try:
            cv2.destroyWindow(self.window_name)
        except cv2.error as e:
            logger.debug(f"Window {self.window_name!r} already gone: {e}")
        logger.info(f"Closed window {self.window_name!r}")
