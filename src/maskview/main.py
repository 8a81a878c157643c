"""
maskview Main Application
=========================

Command-line entry point for the mask overlay viewer.

Threads:
    stream thread (daemon) : asyncio loop running the FrameConsumer and the
                             dispatch loop that feeds the FrameCompositor
    main thread            : OpenCV window pump; mouse clicks reach the
                             SnapshotController here

Usage:
    maskview --topic /camera/image_masked
    maskview --topic /camera/image_masked compressed
    python -m maskview --config maskview.yaml

Controls: left-click saves the displayed frame, q/ESC or closing the
window quits.
"""

import argparse
import asyncio
import logging
import signal
import threading
from typing import Callable, List, Optional

from maskview import __version__
from maskview.config import DEFAULT_TOPIC, Settings, load_config, setup_logging
from maskview.display.window import DisplaySurface
from maskview.overlay.compositor import FrameCompositor
from maskview.overlay.snapshot import SnapshotController
from maskview.overlay.state import OverlayState
from maskview.stream.buffer import FrameBuffer
from maskview.stream.consumer import TRANSPORTS, FrameConsumer
from maskview.stream.frame import Frame


logger = logging.getLogger(__name__)


QUIT_KEYS = (ord("q"), 27)


async def dispatch_frames(
    buffer: FrameBuffer,
    on_frame: Callable[[Frame], None],
    stop_event: threading.Event,
    poll_timeout: float = 0.2,
) -> None:
    """Hand buffered frames to the compositor one at a time, in order."""
    logger.info("Frame dispatch started")

    while not stop_event.is_set():
        frame = await buffer.get(timeout=poll_timeout)
        if frame is None:
            continue
        try:
            on_frame(frame)
        except Exception:
            logger.exception(f"Frame callback failed (frame={frame.frame_id})")

    logger.info("Frame dispatch stopped")


class OverlayViewer:
    """
    Wires transport, compositor, display and snapshot controller together.

    Example:
        viewer = OverlayViewer(load_config())
        exit_code = viewer.run()
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

        self.state = OverlayState(settings.snapshot.filename_format)
        self.display = DisplaySurface(
            settings.window_name,
            autosize=settings.display.autosize,
        )
        self.compositor = FrameCompositor(self.state, self.display)
        self.snapshot = SnapshotController(self.state)

        self.buffer: Optional[FrameBuffer] = None
        self.consumer: Optional[FrameConsumer] = None

        self._stop_event = threading.Event()
        self._stream_thread: Optional[threading.Thread] = None

    def request_stop(self, *_args) -> None:
        if not self._stop_event.is_set():
            logger.info("Shutdown requested")
        self._stop_event.set()

    def start(self) -> None:
        """Open the window and start the stream thread."""
        self.display.open(self.snapshot.on_mouse)
        self._stream_thread = threading.Thread(
            target=self._run_stream,
            name="maskview-stream",
            daemon=True,
        )
        self._stream_thread.start()

    def run(self) -> int:
        """Run until the window closes or a stop is requested. Returns exit code."""
        self.start()
        try:
            while not self._stop_event.is_set():
                key = self.display.pump(self.settings.display.pump_interval_ms)
                if key in QUIT_KEYS:
                    break
                if not self.display.is_open():
                    logger.info("Window closed by operator")
                    break
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.shutdown()
        return 0

    def shutdown(self, join_timeout: float = 5.0) -> None:
        self.request_stop()
        if self._stream_thread is not None:
            self._stream_thread.join(timeout=join_timeout)
            if self._stream_thread.is_alive():
                logger.warning("Stream thread did not stop in time")
        self.display.close()
        logger.info(
            f"Shutdown complete: {self.compositor.metrics.to_dict()}, "
            f"saved {self.state.save_count} snapshot(s)"
        )

    def _run_stream(self) -> None:
        asyncio.run(self._stream_main())

    async def _stream_main(self) -> None:
        stream = self.settings.stream
        self.buffer = FrameBuffer(maxsize=stream.queue_size)
        self.consumer = FrameConsumer(
            url=stream.url,
            buffer=self.buffer,
            topic=stream.topic,
            transport=stream.transport,
            reconnect_backoff_ms=stream.reconnect_backoff_ms,
            max_reconnect_attempts=stream.max_reconnect_attempts,
        )
        consumer_task = asyncio.create_task(self.consumer.run(), name="frame_consumer")

        try:
            await dispatch_frames(self.buffer, self.compositor.on_frame, self._stop_event)
        finally:
            await self.consumer.stop()
            await consumer_task


# =============================================================================
# Command line
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="maskview",
        description="Show a camera stream with its alpha-channel mask overlaid; "
                    "left-click the window to save the displayed frame.",
    )
    parser.add_argument(
        "transport",
        nargs="?",
        choices=TRANSPORTS,
        help="Image transport to negotiate (default: raw)",
    )
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--url", help="Websocket URL of the image stream server")
    parser.add_argument("--topic", help="Image topic to subscribe to")
    parser.add_argument("--window-name", help="Window title (default: topic name)")
    parser.add_argument(
        "--autosize",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fix the window size to the image size (--no-autosize keeps it resizable)",
    )
    parser.add_argument(
        "--filename-format",
        help="Snapshot filename with one integer placeholder (default: frame%%04i.jpg)",
    )
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, ...)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with command-line flags applied on top."""
    data = settings.model_dump()

    overrides = {
        ("stream", "transport"): args.transport,
        ("stream", "url"): args.url,
        ("stream", "topic"): args.topic,
        ("display", "window_name"): args.window_name,
        ("display", "autosize"): args.autosize,
        ("snapshot", "filename_format"): args.filename_format,
        ("logging", "level"): args.log_level,
    }
    for (section, key), value in overrides.items():
        if value is not None:
            data[section][key] = value

    return Settings.model_validate(data)


def is_default_topic(topic: str) -> bool:
    """True if the topic still names the un-remapped default, with or without a leading slash."""
    return topic.lstrip("/") == DEFAULT_TOPIC


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = apply_cli_overrides(load_config(args.config), args)
    setup_logging(settings)

    if is_default_topic(settings.stream.topic):
        logger.warning(
            "maskview: image topic has not been remapped! Typical command-line usage:\n"
            "\t$ maskview --topic <image topic> [transport]"
        )

    logger.info(
        f"Starting maskview {__version__}: topic={settings.stream.topic}, "
        f"transport={settings.stream.transport}, window={settings.window_name!r}"
    )

    viewer = OverlayViewer(settings)
    signal.signal(signal.SIGTERM, viewer.request_stop)
    return viewer.run()


if __name__ == "__main__":
    raise SystemExit(main())
