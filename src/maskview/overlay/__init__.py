"""
Overlay Module
==============

Mask compositing and click-to-save.

Components:
    - FrameCompositor: Per-frame blend of the mask plane into the color planes
    - SnapshotController: Saves the last composite on left-click
    - OverlayState: Lock-guarded last frame and save counter shared by both
"""

from maskview.overlay.state import (
    NoFrameError,
    OverlayState,
    SnapshotWriteError,
    validate_filename_format,
)
from maskview.overlay.compositor import (
    BLEND_ALPHA,
    CompositorMetrics,
    FrameCompositor,
    composite_mask,
)
from maskview.overlay.snapshot import SnapshotController


__all__ = [
    "BLEND_ALPHA",
    "CompositorMetrics",
    "FrameCompositor",
    "NoFrameError",
    "OverlayState",
    "SnapshotController",
    "SnapshotWriteError",
    "composite_mask",
    "validate_filename_format",
]
