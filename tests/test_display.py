"""
Display Tests
=============

DisplaySurface against a patched cv2.highgui, so no window is opened.
"""

import cv2
import numpy as np
import pytest

import maskview.display.window as window
from maskview.display.window import DisplaySurface


@pytest.fixture
def highgui(monkeypatch):
    """Record highgui calls instead of touching a real display."""
    calls = {
        "namedWindow": [],
        "setMouseCallback": [],
        "imshow": [],
        "destroyWindow": [],
        "keys": [],
        "visible": 1.0,
    }

    def wait_key(delay):
        return calls["keys"].pop(0) if calls["keys"] else -1

    def get_window_property(name, prop):
        if isinstance(calls["visible"], Exception):
            raise calls["visible"]
        return calls["visible"]

    monkeypatch.setattr(window.cv2, "namedWindow", lambda *a: calls["namedWindow"].append(a))
    monkeypatch.setattr(
        window.cv2, "setMouseCallback", lambda *a: calls["setMouseCallback"].append(a)
    )
    monkeypatch.setattr(window.cv2, "imshow", lambda *a: calls["imshow"].append(a))
    monkeypatch.setattr(window.cv2, "destroyWindow", lambda *a: calls["destroyWindow"].append(a))
    monkeypatch.setattr(window.cv2, "waitKey", wait_key)
    monkeypatch.setattr(window.cv2, "getWindowProperty", get_window_property)
    return calls


class TestOpen:
    """Window creation and listener binding."""

    def test_resizable_by_default(self, highgui):
        DisplaySurface("overlay").open()
        assert highgui["namedWindow"] == [("overlay", cv2.WINDOW_NORMAL)]

    def test_autosize(self, highgui):
        DisplaySurface("overlay", autosize=True).open()
        assert highgui["namedWindow"] == [("overlay", cv2.WINDOW_AUTOSIZE)]

    def test_mouse_listener_bound_to_window(self, highgui):
        def listener(event, x, y, flags, param):
            pass

        DisplaySurface("overlay").open(listener)
        assert highgui["setMouseCallback"] == [("overlay", listener)]


class TestPump:
    """Presenting images and pumping events."""

    def test_shows_only_latest_pending_image(self, highgui):
        surface = DisplaySurface("overlay")
        surface.open()
        first = np.zeros((2, 2, 3), dtype=np.uint8)
        second = np.ones((2, 2, 3), dtype=np.uint8)

        surface.present(first)
        surface.present(second)
        surface.pump()

        assert len(highgui["imshow"]) == 1
        assert highgui["imshow"][0][0] == "overlay"
        assert highgui["imshow"][0][1] is second

    def test_no_redraw_without_new_image(self, highgui):
        surface = DisplaySurface("overlay")
        surface.open()
        surface.present(np.zeros((2, 2, 3), dtype=np.uint8))

        surface.pump()
        surface.pump()

        assert len(highgui["imshow"]) == 1

    def test_key_codes(self, highgui):
        surface = DisplaySurface("overlay")
        surface.open()
        highgui["keys"] = [ord("q") | 0x100000]

        assert surface.pump() == ord("q")
        assert surface.pump() == -1


class TestLifecycle:
    """Detecting operator close and tearing down."""

    def test_open_window(self, highgui):
        surface = DisplaySurface("overlay")
        assert not surface.is_open()
        surface.open()
        assert surface.is_open()

    def test_closed_by_operator(self, highgui):
        surface = DisplaySurface("overlay")
        surface.open()
        highgui["visible"] = 0.0
        assert not surface.is_open()

    def test_window_gone(self, highgui):
        surface = DisplaySurface("overlay")
        surface.open()
        highgui["visible"] = cv2.error("NULL window")
        assert not surface.is_open()

    def test_close_is_idempotent(self, highgui):
        surface = DisplaySurface("overlay")
        surface.open()

        surface.close()
        surface.close()

        assert highgui["destroyWindow"] == [("overlay",)]
        assert not surface.is_open()
