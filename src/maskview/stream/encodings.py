"""
Image Encodings
===============

Encoding tags understood by the decoder, and the relabel transform that
lets raw Bayer sensor data be viewed as monochrome.

Tags follow the sensor_msgs/Image vocabulary (``bgr8``, ``mono16``,
``bayer_rggb8``...) plus the OpenCV-style ``8UC3`` family.
"""

import logging
from typing import Dict, Tuple

import numpy as np

from maskview.stream.frame import Frame


logger = logging.getLogger(__name__)


class ImageDecodeError(ValueError):
    """Raised when a frame cannot be converted to a displayable image."""
    pass


class UnsupportedEncodingError(ImageDecodeError):
    """Raised for encoding tags the decoder does not know."""
    pass


MONO8 = "mono8"
MONO16 = "mono16"
BGR8 = "bgr8"
BGRA8 = "bgra8"
RGB8 = "rgb8"
RGBA8 = "rgba8"

# encoding -> (channels, bits per channel)
_ENCODINGS: Dict[str, Tuple[int, int]] = {
    MONO8: (1, 8),
    MONO16: (1, 16),
    BGR8: (3, 8),
    RGB8: (3, 8),
    BGRA8: (4, 8),
    RGBA8: (4, 8),
    "bgr16": (3, 16),
    "rgb16": (3, 16),
    "bgra16": (4, 16),
    "rgba16": (4, 16),
}

for _pattern in ("rggb", "bggr", "gbrg", "grbg"):
    _ENCODINGS[f"bayer_{_pattern}8"] = (1, 8)
    _ENCODINGS[f"bayer_{_pattern}16"] = (1, 16)

for _bits in (8, 16):
    for _channels in (1, 2, 3, 4):
        _ENCODINGS[f"{_bits}UC{_channels}"] = (_channels, _bits)


def _lookup(encoding: str) -> Tuple[int, int]:
    try:
        return _ENCODINGS[encoding]
    except KeyError:
        raise UnsupportedEncodingError(f"Unsupported encoding: {encoding!r}")


def num_channels(encoding: str) -> int:
    """Number of channels for an encoding tag."""
    return _lookup(encoding)[0]


def bit_depth(encoding: str) -> int:
    """Bits per channel for an encoding tag."""
    return _lookup(encoding)[1]


def dtype_for(encoding: str) -> np.dtype:
    """Numpy dtype of one channel value."""
    return np.dtype(np.uint16) if bit_depth(encoding) == 16 else np.dtype(np.uint8)


def is_bayer(encoding: str) -> bool:
    """Whether the tag names a raw Bayer-pattern sensor format."""
    return "bayer" in encoding.lower()


def normalize_encoding(frame: Frame) -> Frame:
    """
    Relabel raw Bayer frames as single-channel monochrome.

    No demosaicing is performed: the mask overlay only needs intensity,
    so the mosaic is shown as-is. Frames in any other encoding are
    returned unchanged. The input frame is never modified.

    Args:
        frame: Frame as delivered by the transport

    Returns:
        The same frame, or a relabeled copy for Bayer encodings
    """
    if not is_bayer(frame.encoding):
        return frame

    relabeled = MONO16 if frame.encoding.endswith("16") else MONO8
    logger.debug(f"Relabeling {frame.encoding} frame {frame.frame_id} as {relabeled}")
    return frame.with_encoding(relabeled)
