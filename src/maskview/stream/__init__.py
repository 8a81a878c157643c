"""
Stream Module
=============

Frame ingestion for the overlay viewer.

This module provides:
    - Frame: Immutable raw frame (internal representation)
    - FrameBuffer: Drop-oldest asyncio queue, depth 1 by default
    - FrameConsumer: Websocket subscriber for raw or compressed transport
    - decode_frame_bgra: The per-frame conversion to 8-bit BGRA

Example:
    from maskview.stream import FrameBuffer, FrameConsumer

    buffer = FrameBuffer()
    consumer = FrameConsumer(url, buffer, topic="/camera/image_masked")
    task = asyncio.create_task(consumer.run())

    while True:
        frame = await buffer.get()
        compositor.on_frame(frame)
"""

from maskview.stream.frame import Frame
from maskview.stream.buffer import FrameBuffer
from maskview.stream.consumer import FrameConsumer, FrameConsumerMetrics
from maskview.stream.encodings import (
    ImageDecodeError,
    UnsupportedEncodingError,
    normalize_encoding,
)
from maskview.stream.image_decoder import decode_frame_bgra


__all__ = [
    "Frame",
    "FrameBuffer",
    "FrameConsumer",
    "FrameConsumerMetrics",
    "ImageDecodeError",
    "UnsupportedEncodingError",
    "normalize_encoding",
    "decode_frame_bgra",
]
