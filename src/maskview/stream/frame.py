"""
Frame Data Model
=================

Internal frame representation for the ingestion pipeline.

This module defines the typed Frame class that is used as the interface
between the stream consumer and the overlay compositor.

Design Rules:
    - This is the ONLY frame format passed to downstream stages
    - Frames are immutable; relabeling produces a new Frame
    - Pixel payload is carried as raw bytes, decoding happens elsewhere
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Raw image frame from the subscribed stream.

    This is the canonical internal representation of a frame.
    It is immutable (frozen) so that the compositor can never modify
    state shared with the transport.

    Attributes:
        frame_id: Sequence number assigned by the source
        timestamp: UNIX timestamp when the frame was captured
        width: Image width in pixels
        height: Image height in pixels
        encoding: Pixel encoding tag (e.g. "bgra8", "mono8", "bayer_rggb8")
        step: Row stride in bytes
        data: Raw pixel payload
        is_bigendian: Byte order of multi-byte channels
    """

    frame_id: int
    timestamp: float
    width: int
    height: int
    encoding: str
    step: int
    data: bytes
    is_bigendian: bool = False

    def with_encoding(self, encoding: str) -> "Frame":
        """Return a copy of this frame carrying a different encoding tag."""
        return replace(self, encoding=encoding)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel payload."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"timestamp={self.timestamp:.3f}, "
            f"size={self.width}x{self.height}, "
            f"encoding={self.encoding!r})"
        )
