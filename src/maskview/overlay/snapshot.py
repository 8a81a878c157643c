"""
Snapshot Controller
===================

Saves the currently displayed composite when the operator left-clicks
the overlay window.
"""

import logging
from typing import Callable, Optional

import cv2
import numpy as np

from maskview.overlay.state import NoFrameError, OverlayState, SnapshotWriteError


logger = logging.getLogger(__name__)


ImageWriter = Callable[[str, np.ndarray], bool]


class SnapshotController:
    """
    UI-thread callback that writes the last frame to a numbered file.

    Attributes:
        state: Shared overlay state holding the last frame and counter
        writer: cv2.imwrite-compatible callable, returns False on failure
    """

    def __init__(self, state: OverlayState, writer: ImageWriter = cv2.imwrite) -> None:
        self.state = state
        self.writer = writer

    def on_mouse(self, event: int, x: int, y: int, flags: int, param=None) -> None:
        """cv2 mouse callback. Only a left-button press saves."""
        if event != cv2.EVENT_LBUTTONDOWN:
            return
        self.save()

    def save(self) -> Optional[str]:
        """
        Save the last composited frame.

        Returns:
            Filename written, or None if there was nothing to save or the
            write failed
        """
        try:
            filename = self.state.save_last_frame(self._write)
        except NoFrameError:
            logger.warning("Couldn't save image, no data!")
            return None
        except SnapshotWriteError as e:
            logger.error(str(e))
            return None

        logger.info(f"Saved image {filename}")
        return filename

    def _write(self, filename: str, image: np.ndarray) -> None:
        try:
            ok = self.writer(filename, image)
        except (cv2.error, OSError) as e:
            raise SnapshotWriteError(f"Failed to save image {filename}: {e}")

        if not ok:
            raise SnapshotWriteError(f"Failed to save image {filename}")
