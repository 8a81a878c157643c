"""
Frame Consumer
===============

Websocket subscription that delivers image frames into a FrameBuffer.

This module provides the FrameConsumer class which:
    - Connects to the image stream server and subscribes to one topic
    - Negotiates the transport ("raw" or "compressed")
    - Parses and validates frame messages
    - Decompresses compressed payloads into raw frames
    - Reconnects after a fixed backoff on disconnect
    - Pushes frames into a FrameBuffer, in arrival order

Design Rules:
    - Does NOT composite or display anything
    - Logs validation warnings but continues processing
    - Malformed messages are dropped and counted
"""

import asyncio
import base64
import binascii
import json
import logging
from typing import Optional

import websockets
from pydantic import ValidationError
from websockets.exceptions import (
    ConnectionClosedError,
    ConnectionClosedOK,
)

from maskview.stream.buffer import FrameBuffer
from maskview.stream.frame import Frame
from maskview.stream.image_decoder import ImageDecodeError, decompress_frame
from maskview.stream.messages import CompressedImageMessage, ImageMessage


logger = logging.getLogger(__name__)


TRANSPORTS = ("raw", "compressed")

# Raw 4-channel frames get large; allow up to 4K BGRA16.
MAX_MESSAGE_BYTES = 128 * 1024 * 1024


class FrameConsumerMetrics:
    """Metrics for FrameConsumer observability."""

    __slots__ = (
        "frames_received",
        "reconnect_count",
        "last_frame_id",
        "last_timestamp",
        "validation_warnings",
        "parse_errors",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.reconnect_count: int = 0
        self.last_frame_id: int = -1
        self.last_timestamp: float = 0.0
        self.validation_warnings: int = 0
        self.parse_errors: int = 0

    def to_dict(self) -> dict:
        return {slot: getattr(self, slot) for slot in self.__slots__}


class FrameConsumer:
    """
    Websocket subscriber for one image topic.

    Attributes:
        url: Websocket URL of the stream server
        buffer: FrameBuffer to push frames into
        topic: Image topic to subscribe to
        transport: "raw" or "compressed"
        connected: Whether currently connected
        metrics: Operational metrics

    Example:
        buffer = FrameBuffer()
        consumer = FrameConsumer(
            url="ws://localhost:9090/ws/images",
            buffer=buffer,
            topic="/camera/image_masked",
        )

        task = asyncio.create_task(consumer.run())
        ...
        await consumer.stop()
        await task
    """

    def __init__(
        self,
        url: str,
        buffer: FrameBuffer,
        topic: str = "image",
        transport: str = "raw",
        reconnect_backoff_ms: int = 500,
        max_reconnect_attempts: int = 0,
    ) -> None:
        """
        Initialize frame consumer.

        Args:
            url: Websocket URL of the stream server
            buffer: FrameBuffer to push frames into
            topic: Image topic to subscribe to
            transport: Transport to negotiate, "raw" or "compressed"
            reconnect_backoff_ms: Backoff between reconnect attempts
            max_reconnect_attempts: Max attempts (0 = unlimited)

        Raises:
            ValueError: If the transport is unknown
        """
        if transport not in TRANSPORTS:
            raise ValueError(
                f"Unknown transport {transport!r}, expected one of {TRANSPORTS}"
            )

        self.url = url
        self.buffer = buffer
        self.topic = topic
        self.transport = transport
        self.reconnect_backoff_ms = reconnect_backoff_ms
        self.max_reconnect_attempts = max_reconnect_attempts

        self._session: Optional[asyncio.Future] = None
        self._connected: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()

        self.metrics = FrameConsumerMetrics()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def run(self) -> None:
        """
        Consume frames until stop() is called.

        Reconnects on disconnect, giving up only once
        max_reconnect_attempts (when non-zero) is exhausted. Returns
        immediately if stop() was already called.
        """
        if self.stopped:
            logger.info("FrameConsumer stopped before it started")
            return

        logger.info(
            f"FrameConsumer subscribing to {self.topic} "
            f"({self.transport} transport) at {self.url}"
        )

        while not self.stopped:
            self._session = asyncio.ensure_future(self._connect_and_consume())
            try:
                await self._session
            except asyncio.CancelledError:
                if not self.stopped:
                    raise
                break
            except Exception as e:
                if self.stopped:
                    break
                logger.error(f"Connection error: {e}")
            finally:
                self._session = None
                self._connected = False

            if self.stopped:
                break

            if (
                self.max_reconnect_attempts > 0
                and self.metrics.reconnect_count >= self.max_reconnect_attempts
            ):
                logger.error(
                    f"Max reconnect attempts ({self.max_reconnect_attempts}) exceeded"
                )
                break

            self.metrics.reconnect_count += 1
            backoff_sec = self.reconnect_backoff_ms / 1000.0
            logger.info(
                f"Reconnecting in {backoff_sec:.1f}s "
                f"(attempt {self.metrics.reconnect_count})"
            )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=backoff_sec)
                break
            except asyncio.TimeoutError:
                pass

        logger.info("FrameConsumer stopped")

    async def stop(self) -> None:
        """
        Signal the run loop to exit.

        Safe to call before run(). A connection attempt or receive loop
        in progress is cancelled, which closes the socket.
        """
        logger.info("FrameConsumer stopping...")
        self._stop_event.set()

        if self._session is not None and not self._session.done():
            self._session.cancel()

        self._connected = False

    def subscribe_request(self) -> str:
        """JSON subscription request sent right after connecting."""
        return json.dumps(
            {"op": "subscribe", "topic": self.topic, "transport": self.transport}
        )

    async def _connect_and_consume(self) -> None:
        async with websockets.connect(
            self.url,
            ping_interval=20,
            ping_timeout=10,
            close_timeout=5,
            max_size=MAX_MESSAGE_BYTES,
        ) as ws:
            if self.stopped:
                return

            self._connected = True
            logger.info(f"Connected to image stream: {self.url}")

            try:
                await ws.send(self.subscribe_request())
                async for message in ws:
                    if self.stopped:
                        break

                    frame = self._parse_and_validate(message)
                    if frame is not None:
                        await self.buffer.put(frame)
                        self.metrics.frames_received += 1
                        self.metrics.last_frame_id = frame.frame_id
                        self.metrics.last_timestamp = frame.timestamp

            except ConnectionClosedOK:
                logger.info("Connection closed normally")
            except ConnectionClosedError as e:
                logger.warning(f"Connection closed with error: {e}")
                raise
            finally:
                self._connected = False

    def _parse_and_validate(self, raw) -> Optional[Frame]:
        """
        Parse one websocket message into a Frame.

        Ordering anomalies are logged and counted but the frame is
        still delivered. Malformed messages return None.

        Args:
            raw: JSON message, as str or bytes

        Returns:
            Frame, or None on parse/decode error
        """
        schema = ImageMessage if self.transport == "raw" else CompressedImageMessage
        try:
            message = schema.model_validate_json(raw)
        except ValidationError as e:
            self.metrics.parse_errors += 1
            logger.error(f"Invalid {self.transport} image message: {e}")
            return None

        try:
            payload = base64.b64decode(message.data, validate=True)
        except binascii.Error as e:
            self.metrics.parse_errors += 1
            logger.error(f"Base64 decode failed for frame {message.frame_id}: {e}")
            return None

        if self.transport == "raw":
            frame = _frame_from_raw(message, payload)
        else:
            try:
                frame = decompress_frame(message.frame_id, message.timestamp, payload)
            except ImageDecodeError as e:
                self.metrics.parse_errors += 1
                logger.error(str(e))
                return None

        self._check_ordering(frame)
        return frame

    def _check_ordering(self, frame: Frame) -> None:
        last_id = self.metrics.last_frame_id
        if last_id >= 0:
            expected_id = last_id + 1
            if frame.frame_id < expected_id:
                self.metrics.validation_warnings += 1
                logger.warning(
                    f"Frame ID went backwards: got {frame.frame_id}, "
                    f"expected {expected_id}"
                )
            elif frame.frame_id > expected_id:
                self.metrics.validation_warnings += 1
                logger.warning(
                    f"Frame ID gap: got {frame.frame_id}, expected {expected_id} "
                    f"(gap of {frame.frame_id - expected_id} frames)"
                )

        if self.metrics.last_timestamp > 0 and frame.timestamp < self.metrics.last_timestamp:
            self.metrics.validation_warnings += 1
            logger.warning(
                f"Timestamp went backwards: got {frame.timestamp:.3f}, "
                f"previous was {self.metrics.last_timestamp:.3f}"
            )


def _frame_from_raw(message: ImageMessage, payload: bytes) -> Frame:
    return Frame(
        frame_id=message.frame_id,
        timestamp=message.timestamp,
        width=message.width,
        height=message.height,
        encoding=message.encoding,
        step=message.step,
        data=payload,
        is_bigendian=message.is_bigendian,
    )
