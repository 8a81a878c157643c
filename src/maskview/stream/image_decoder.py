"""
Image Decoder
=============

Dedicated module for converting raw frames into OpenCV matrices.

Design Rules:
    - This is the ONLY place in the codebase that interprets pixel payloads
    - Validates payload size against the declared geometry
    - Fails fast on corrupt frames
    - Produces 8-bit BGRA, the layout the overlay compositor works on
"""

import logging
import sys

import cv2
import numpy as np

from maskview.stream.encodings import (
    ImageDecodeError,
    UnsupportedEncodingError,
    bit_depth,
    num_channels,
)
from maskview.stream.frame import Frame


logger = logging.getLogger(__name__)


__all__ = [
    "ImageDecodeError",
    "UnsupportedEncodingError",
    "frame_to_array",
    "decode_frame_bgra",
    "decompress_frame",
]


def frame_to_array(frame: Frame) -> np.ndarray:
    """
    View a frame's payload as a numpy array.

    Row padding (step larger than the packed row) is stripped and
    big-endian 16-bit data is converted to native byte order.

    Args:
        frame: Frame with raw pixel payload

    Returns:
        Array of shape (H, W) for single-channel encodings or (H, W, C),
        dtype uint8 or uint16

    Raises:
        ImageDecodeError: If the payload does not match the declared geometry
    """
    channels = num_channels(frame.encoding)
    depth = bit_depth(frame.encoding)
    itemsize = depth // 8

    if frame.width <= 0 or frame.height <= 0:
        raise ImageDecodeError(
            f"Invalid size for frame {frame.frame_id}: {frame.width}x{frame.height}"
        )

    row_bytes = frame.width * channels * itemsize
    if frame.step < row_bytes:
        raise ImageDecodeError(
            f"Step {frame.step} too small for frame {frame.frame_id} "
            f"(need at least {row_bytes})"
        )

    expected = frame.step * frame.height
    if len(frame.data) < expected:
        raise ImageDecodeError(
            f"Truncated payload for frame {frame.frame_id}: "
            f"got {len(frame.data)} bytes, expected {expected}"
        )

    rows = np.frombuffer(frame.data, dtype=np.uint8, count=expected)
    rows = rows.reshape(frame.height, frame.step)[:, :row_bytes]
    rows = np.ascontiguousarray(rows)

    if depth == 16:
        wire_dtype = np.dtype(">u2") if frame.is_bigendian else np.dtype("<u2")
        pixels = rows.view(wire_dtype).astype(np.uint16)
    else:
        pixels = rows

    if channels == 1:
        return pixels.reshape(frame.height, frame.width)
    return pixels.reshape(frame.height, frame.width, channels)


def decode_frame_bgra(frame: Frame) -> np.ndarray:
    """
    Convert a frame to 8-bit BGRA.

    This is the single colorspace conversion performed per frame.
    16-bit channels are scaled down by 256. Single-channel data is
    expanded to gray BGR with an opaque alpha, as are 3-channel images;
    4-channel images keep their alpha, which carries the overlay mask.

    Args:
        frame: Frame with raw pixel payload

    Returns:
        BGRA image as np.ndarray (H, W, 4), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or the encoding is unsupported
    """
    pixels = frame_to_array(frame)
    encoding = frame.encoding
    channels = num_channels(encoding)

    if pixels.dtype == np.uint16:
        pixels = (pixels // 256).astype(np.uint8)

    try:
        if channels == 1:
            bgra = cv2.cvtColor(pixels, cv2.COLOR_GRAY2BGRA)
        elif channels == 3:
            code = cv2.COLOR_RGB2BGRA if encoding.startswith("rgb") else cv2.COLOR_BGR2BGRA
            bgra = cv2.cvtColor(pixels, code)
        elif channels == 4:
            if encoding.startswith("rgba"):
                bgra = cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGRA)
            else:
                bgra = pixels.copy()
        else:
            raise UnsupportedEncodingError(
                f"Cannot convert {channels}-channel encoding {encoding!r} to bgra8"
            )
    except cv2.error as e:
        raise ImageDecodeError(
            f"Color conversion failed for frame {frame.frame_id}: {e}"
        )

    if bgra.ndim != 3 or bgra.shape[2] != 4 or bgra.dtype != np.uint8:
        raise ImageDecodeError(
            f"Invalid converted shape for frame {frame.frame_id}: "
            f"{bgra.shape} {bgra.dtype}"
        )

    return bgra


_DECOMPRESSED_ENCODINGS = {
    (1, np.dtype(np.uint8)): "mono8",
    (1, np.dtype(np.uint16)): "mono16",
    (3, np.dtype(np.uint8)): "bgr8",
    (3, np.dtype(np.uint16)): "bgr16",
    (4, np.dtype(np.uint8)): "bgra8",
    (4, np.dtype(np.uint16)): "bgra16",
}


def decompress_frame(frame_id: int, timestamp: float, payload: bytes) -> Frame:
    """
    Decompress a PNG/JPEG payload into a raw Frame.

    The image is read unchanged so that a PNG alpha channel, which
    carries the overlay mask, survives.

    Raises:
        ImageDecodeError: If the payload is not a decodable image
    """
    nparr = np.frombuffer(payload, np.uint8)
    try:
        image = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise ImageDecodeError(f"Failed to decompress frame {frame_id}: {e}")

    if image is None:
        raise ImageDecodeError(
            f"Failed to decompress frame {frame_id}: cv2.imdecode returned None"
        )

    channels = 1 if image.ndim == 2 else image.shape[2]
    encoding = _DECOMPRESSED_ENCODINGS.get((channels, image.dtype))
    if encoding is None:
        raise ImageDecodeError(
            f"Unsupported decompressed layout for frame {frame_id}: "
            f"{image.shape} {image.dtype}"
        )

    height, width = image.shape[:2]
    image = np.ascontiguousarray(image)
    return Frame(
        frame_id=frame_id,
        timestamp=timestamp,
        width=width,
        height=height,
        encoding=encoding,
        step=width * channels * image.dtype.itemsize,
        data=image.tobytes(),
        is_bigendian=sys.byteorder == "big",
    )
