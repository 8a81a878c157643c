"""
Frame Compositor
================

Blends the mask carried in a frame's alpha channel into its color planes
and hands the result to the display.

Per frame:
    1. Relabel raw Bayer data as monochrome
    2. Convert to 8-bit BGRA
    3. Split into blue, green, red and mask planes
    4. plane' = 0.7 * plane + 0.3 * mask, for each color plane
    5. Merge the blended planes into one BGR image (mask is consumed)
    6. Present on the display
    7. Publish as the last frame for snapshots

Rounding: the weighted sum is computed in float64 and rounded half up,
then saturated to [0, 255].

Design Rules:
    - A bad frame is logged and dropped, never raised
    - Pixel work runs outside the shared lock; only the publish swap is locked
"""

import logging
from typing import Protocol

import cv2
import numpy as np

from maskview.overlay.state import OverlayState
from maskview.stream.encodings import normalize_encoding
from maskview.stream.frame import Frame
from maskview.stream.image_decoder import ImageDecodeError, decode_frame_bgra


logger = logging.getLogger(__name__)


BLEND_ALPHA = 0.7


class DisplaySink(Protocol):
    """Anything that can show a BGR image."""

    def present(self, image: np.ndarray) -> None:
        ...


class CompositorMetrics:
    """Per-process compositing counters."""

    __slots__ = ("frames_composited", "frames_dropped", "last_frame_id")

    def __init__(self) -> None:
        self.frames_composited: int = 0
        self.frames_dropped: int = 0
        self.last_frame_id: int = -1

    def to_dict(self) -> dict:
        return {
            "frames_composited": self.frames_composited,
            "frames_dropped": self.frames_dropped,
            "last_frame_id": self.last_frame_id,
        }


def blend_plane(plane: np.ndarray, mask: np.ndarray, alpha: float = BLEND_ALPHA) -> np.ndarray:
    """Weighted sum of one color plane and the mask plane, rounded half up."""
    blended = alpha * plane.astype(np.float64) + (1.0 - alpha) * mask.astype(np.float64)
    return np.clip(np.floor(blended + 0.5), 0, 255).astype(np.uint8)


def composite_mask(bgra: np.ndarray, alpha: float = BLEND_ALPHA) -> np.ndarray:
    """
    Overlay the alpha/mask plane onto the color planes.

    Args:
        bgra: Image as np.ndarray (H, W, 4), dtype=uint8
        alpha: Weight of the color plane; the mask gets 1 - alpha

    Returns:
        BGR image as np.ndarray (H, W, 3), dtype=uint8
    """
    if bgra.ndim != 3 or bgra.shape[2] != 4:
        raise ValueError(f"Expected a 4-channel image, got shape {bgra.shape}")

    b, g, r, mask = cv2.split(bgra)
    return cv2.merge((
        blend_plane(b, mask, alpha),
        blend_plane(g, mask, alpha),
        blend_plane(r, mask, alpha),
    ))


class FrameCompositor:
    """
    Frame-delivery callback: composite, present, publish.

    Frames arrive one at a time from the dispatch loop. The compositor
    keeps no per-frame state of its own besides metrics.

    Attributes:
        state: Shared overlay state receiving finished images
        display: Display surface the composite is presented on
        metrics: Counters for composited and dropped frames
    """

    def __init__(self, state: OverlayState, display: DisplaySink) -> None:
        self.state = state
        self.display = display
        self.metrics = CompositorMetrics()

    def on_frame(self, frame: Frame) -> None:
        """Composite one frame. Conversion failures drop the frame."""
        frame = normalize_encoding(frame)

        try:
            bgra = decode_frame_bgra(frame)
        except ImageDecodeError as e:
            self.metrics.frames_dropped += 1
            logger.error(f"Unable to convert {frame.encoding} image to bgra8: {e}")
            return

        logger.debug(
            f"Received frame {frame.frame_id} with {bgra.shape[2]} channels "
            f"({frame.encoding})"
        )

        composited = composite_mask(bgra)

        self.display.present(composited)
        self.state.publish(composited)

        self.metrics.frames_composited += 1
        self.metrics.last_frame_id = frame.frame_id
