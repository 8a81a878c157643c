"""
Test Configuration
==================

Pytest fixtures and test configuration for maskview.
"""

import asyncio
import base64
import json
import threading

import numpy as np
import pytest
import websockets

from maskview.overlay.state import OverlayState
from maskview.stream.frame import Frame


class FakeDisplay:
    """Display surface stand-in that records presented images."""

    def __init__(self):
        self.presented = []
        self.presented_event = threading.Event()

    def present(self, image):
        self.presented.append(image)
        self.presented_event.set()


def frame_from_array(array, encoding, frame_id=0, timestamp=1.0, is_bigendian=False):
    """Pack a numpy image into a raw Frame."""
    array = np.ascontiguousarray(array)
    if array.dtype == np.uint16:
        array = array.astype(">u2" if is_bigendian else "<u2")
    height, width = array.shape[:2]
    return Frame(
        frame_id=frame_id,
        timestamp=timestamp,
        width=width,
        height=height,
        encoding=encoding,
        step=array[0].nbytes,
        data=array.tobytes(),
        is_bigendian=is_bigendian,
    )


def message_from_frame(frame, **overrides):
    """Serialize a Frame as a raw-transport websocket message."""
    message = {
        "frame_id": frame.frame_id,
        "timestamp": frame.timestamp,
        "width": frame.width,
        "height": frame.height,
        "encoding": frame.encoding,
        "step": frame.step,
        "is_bigendian": frame.is_bigendian,
        "data": base64.b64encode(frame.data).decode(),
    }
    message.update(overrides)
    return json.dumps(message)


@pytest.fixture
def make_frame():
    """Factory turning a numpy image into a Frame."""
    return frame_from_array


@pytest.fixture
def bgra_image():
    """2x2 BGRA image: color planes 200, mask plane 100."""
    image = np.full((2, 2, 4), 200, dtype=np.uint8)
    image[:, :, 3] = 100
    return image


@pytest.fixture
def bgra_frame(bgra_image):
    """Frame carrying bgra_image."""
    return frame_from_array(bgra_image, "bgra8", frame_id=1)


@pytest.fixture
def fake_display():
    return FakeDisplay()


@pytest.fixture
def overlay_state(tmp_path):
    """Overlay state whose snapshots land in tmp_path."""
    return OverlayState(str(tmp_path / "frame%04i.png"))


class StreamServer:
    """
    Local image stream server on its own thread and event loop.

    Records each subscription request, answers it with the given
    messages, then keeps the connection open until the client leaves.
    """

    def __init__(self, messages):
        self.messages = list(messages)
        self.subscriptions = []
        self.port = None
        self._ready = threading.Event()
        self._loop = None
        self._done = None
        self._thread = threading.Thread(
            target=lambda: asyncio.run(self._serve()),
            name="stream-server",
            daemon=True,
        )

    @property
    def url(self):
        return f"ws://127.0.0.1:{self.port}/images"

    async def _handler(self, websocket):
        self.subscriptions.append(json.loads(await websocket.recv()))
        for message in self.messages:
            await websocket.send(message)
        await websocket.wait_closed()

    async def _serve(self):
        self._loop = asyncio.get_running_loop()
        self._done = self._loop.create_future()
        async with websockets.serve(self._handler, "127.0.0.1", 0) as server:
            self.port = server.sockets[0].getsockname()[1]
            self._ready.set()
            await self._done

    def __enter__(self):
        self._thread.start()
        if not self._ready.wait(timeout=10):
            raise RuntimeError("stream server did not start")
        return self

    def __exit__(self, *exc_info):
        self._loop.call_soon_threadsafe(self._done.set_result, None)
        self._thread.join(timeout=10)


@pytest.fixture
def raw_message():
    """Factory serializing a Frame as a raw-transport message."""
    return message_from_frame


@pytest.fixture
def stream_server(bgra_frame):
    """Server that sends bgra_frame once to each subscriber."""
    with StreamServer([message_from_frame(bgra_frame)]) as server:
        yield server
