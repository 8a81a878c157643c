"""
Overlay State
=============

The one piece of state shared between the frame-delivery thread and the
UI thread: the last composited image and the snapshot counter.

Design Rules:
    - A single lock guards both fields
    - Writers publish finished images only; the compositing work happens
      before publish() and outside the lock
    - Published arrays are never written to again
    - The counter moves only after a successful write, so no filename is
      skipped for a failed save
"""

import logging
import re
import threading
from typing import Callable, Optional

import numpy as np


logger = logging.getLogger(__name__)


DEFAULT_FILENAME_FORMAT = "frame%04i.jpg"

_CONVERSION = re.compile(r"%(%|[-+ 0#]*\d*(?:\.\d+)?[a-zA-Z])")


class NoFrameError(RuntimeError):
    """Raised when a snapshot is requested before any frame was composited."""
    pass


class SnapshotWriteError(RuntimeError):
    """Raised by image writers when a snapshot could not be stored."""
    pass


def validate_filename_format(filename_format: str) -> str:
    """
    Check that a filename template holds exactly one integer placeholder.

    Accepts printf-style ``%d``/``%i`` with flags and width (``%04i``);
    ``%%`` is a literal percent sign.

    Raises:
        ValueError: If the template has zero, several, or non-integer
            placeholders
    """
    conversions = [
        m.group(1) for m in _CONVERSION.finditer(filename_format) if m.group(1) != "%"
    ]
    if len(conversions) != 1 or conversions[0][-1] not in "di":
        raise ValueError(
            f"Filename format {filename_format!r} must contain exactly one "
            f"integer placeholder such as %04i"
        )
    return filename_format


class OverlayState:
    """
    Lock-guarded cell holding the last composited frame and the save counter.

    Example:
        state = OverlayState("frame%04i.jpg")

        # frame-delivery thread
        state.publish(composited)

        # UI thread
        filename = state.save_last_frame(writer)
    """

    def __init__(self, filename_format: str = DEFAULT_FILENAME_FORMAT) -> None:
        self.filename_format = validate_filename_format(filename_format)
        self.lock = threading.Lock()

        self._last_frame: Optional[np.ndarray] = None
        self._save_count: int = 0

    @property
    def last_frame(self) -> Optional[np.ndarray]:
        with self.lock:
            return self._last_frame

    @property
    def save_count(self) -> int:
        with self.lock:
            return self._save_count

    def publish(self, image: np.ndarray) -> None:
        """Swap in a fully composited image as the new last frame."""
        with self.lock:
            self._last_frame = image

    def render_filename(self, count: int) -> str:
        return self.filename_format % count

    def save_last_frame(self, write: Callable[[str, np.ndarray], None]) -> str:
        """
        Write the last frame to the next numbered filename.

        The lock is held across read, write and increment so that two
        saves can never claim the same number.

        Args:
            write: Callable(filename, image) that raises SnapshotWriteError
                on failure

        Returns:
            The filename written

        Raises:
            NoFrameError: If no frame has been published yet
            SnapshotWriteError: If the write failed; the counter is unchanged
        """
        with self.lock:
            image = self._last_frame
            if image is None:
                raise NoFrameError("no frame has been composited yet")

            filename = self.render_filename(self._save_count)
            write(filename, image)
            self._save_count += 1
            return filename
