"""
Image Decoder Tests
===================

Conversion of raw and compressed frames to 8-bit BGRA.
"""

import cv2
import numpy as np
import pytest

from maskview.stream.frame import Frame
from maskview.stream.image_decoder import (
    ImageDecodeError,
    UnsupportedEncodingError,
    decode_frame_bgra,
    decompress_frame,
    frame_to_array,
)


class TestFrameToArray:
    """Payload interpretation."""

    def test_step_padding_is_stripped(self):
        frame = Frame(
            frame_id=0,
            timestamp=1.0,
            width=2,
            height=2,
            encoding="mono8",
            step=4,
            data=bytes([1, 2, 0, 0, 3, 4, 0, 0]),
        )
        np.testing.assert_array_equal(frame_to_array(frame), [[1, 2], [3, 4]])

    def test_big_endian_16bit(self, make_frame):
        image = np.array([[0x1234, 0xABCD]], dtype=np.uint16)
        frame = make_frame(image, "mono16", is_bigendian=True)

        result = frame_to_array(frame)
        assert result.dtype == np.uint16
        np.testing.assert_array_equal(result, image)

    def test_truncated_payload(self, bgra_frame):
        truncated = Frame(
            frame_id=bgra_frame.frame_id,
            timestamp=bgra_frame.timestamp,
            width=bgra_frame.width,
            height=bgra_frame.height,
            encoding=bgra_frame.encoding,
            step=bgra_frame.step,
            data=bgra_frame.data[:-1],
        )
        with pytest.raises(ImageDecodeError):
            frame_to_array(truncated)

    def test_step_smaller_than_row(self, bgra_frame):
        with pytest.raises(ImageDecodeError):
            frame_to_array(Frame(0, 1.0, 2, 2, "bgra8", 4, bgra_frame.data))

    def test_zero_size(self):
        with pytest.raises(ImageDecodeError):
            frame_to_array(Frame(0, 1.0, 0, 0, "mono8", 0, b""))


class TestDecodeFrameBgra:
    """The per-frame colorspace conversion."""

    def test_bgra_passes_through(self, bgra_frame, bgra_image):
        result = decode_frame_bgra(bgra_frame)
        assert result.shape == (2, 2, 4)
        assert result.dtype == np.uint8
        np.testing.assert_array_equal(result, bgra_image)

    def test_rgba_is_swapped(self, make_frame):
        rgba = np.zeros((1, 1, 4), dtype=np.uint8)
        rgba[0, 0] = (10, 20, 30, 40)

        result = decode_frame_bgra(make_frame(rgba, "rgba8"))
        assert tuple(result[0, 0]) == (30, 20, 10, 40)

    def test_rgb_gets_opaque_alpha(self, make_frame):
        rgb = np.zeros((1, 1, 3), dtype=np.uint8)
        rgb[0, 0] = (10, 20, 30)

        result = decode_frame_bgra(make_frame(rgb, "rgb8"))
        assert tuple(result[0, 0]) == (30, 20, 10, 255)

    def test_bgr_gets_opaque_alpha(self, make_frame):
        bgr = np.zeros((1, 1, 3), dtype=np.uint8)
        bgr[0, 0] = (10, 20, 30)

        result = decode_frame_bgra(make_frame(bgr, "bgr8"))
        assert tuple(result[0, 0]) == (10, 20, 30, 255)

    def test_mono_expands_to_gray(self, make_frame):
        mono = np.array([[0, 128]], dtype=np.uint8)

        result = decode_frame_bgra(make_frame(mono, "mono8"))
        assert tuple(result[0, 1]) == (128, 128, 128, 255)
        assert tuple(result[0, 0]) == (0, 0, 0, 255)

    def test_16bit_is_scaled_down(self, make_frame):
        mono = np.array([[0x1234]], dtype=np.uint16)

        result = decode_frame_bgra(make_frame(mono, "mono16"))
        assert tuple(result[0, 0]) == (0x12, 0x12, 0x12, 255)

    def test_two_channel_unsupported(self, make_frame):
        image = np.zeros((2, 2, 2), dtype=np.uint8)
        with pytest.raises(UnsupportedEncodingError):
            decode_frame_bgra(make_frame(image, "8UC2"))

    def test_unknown_encoding(self, bgra_frame):
        with pytest.raises(UnsupportedEncodingError):
            decode_frame_bgra(bgra_frame.with_encoding("yuv422"))


class TestDecompressFrame:
    """Compressed transport payloads."""

    def test_png_keeps_alpha(self):
        bgra = np.zeros((3, 4, 4), dtype=np.uint8)
        bgra[:, :, 0] = 50
        bgra[:, :, 3] = 200
        ok, png = cv2.imencode(".png", bgra)
        assert ok

        frame = decompress_frame(7, 2.5, png.tobytes())

        assert frame.frame_id == 7
        assert frame.timestamp == 2.5
        assert frame.encoding == "bgra8"
        assert (frame.width, frame.height) == (4, 3)
        np.testing.assert_array_equal(decode_frame_bgra(frame), bgra)

    def test_grayscale_png(self):
        gray = np.full((2, 2), 9, dtype=np.uint8)
        ok, png = cv2.imencode(".png", gray)
        assert ok

        frame = decompress_frame(0, 1.0, png.tobytes())
        assert frame.encoding == "mono8"

    def test_garbage_payload(self):
        with pytest.raises(ImageDecodeError):
            decompress_frame(0, 1.0, b"definitely not an image")
