"""
Frame Buffer
=============

Bounded asyncio queue between the stream consumer and the compositor.

Design Rules:
    - Fixed maximum size, newest frame wins (drops oldest on overflow)
    - Default depth of 1: a slow display always sees the latest frame
    - Frames leave the buffer one at a time, in arrival order
    - Does NOT process or modify frames
"""

import asyncio
import logging
from typing import Optional

from maskview.stream.frame import Frame


logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Drop-oldest queue of frames awaiting compositing.

    Attributes:
        maxsize: Maximum number of frames held
        dropped_count: Frames discarded because a newer one arrived

    Example:
        buffer = FrameBuffer()

        # Producer (stream consumer)
        await buffer.put(frame)

        # Consumer (dispatch loop)
        frame = await buffer.get(timeout=0.5)
    """

    def __init__(self, maxsize: int = 1) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._queue: asyncio.Queue[Frame] = asyncio.Queue(maxsize=maxsize)
        self._dropped_count: int = 0
        self._total_put: int = 0

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def size(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def total_put(self) -> int:
        return self._total_put

    async def put(self, frame: Frame) -> bool:
        """
        Add a frame, discarding the oldest queued frame if full.

        Returns:
            True if nothing was discarded to make room.
        """
        self._total_put += 1
        dropped = False

        if self._queue.full():
            try:
                stale = self._queue.get_nowait()
                self._dropped_count += 1
                dropped = True
                logger.debug(
                    f"Superseded frame {stale.frame_id} by {frame.frame_id} "
                    f"(dropped so far: {self._dropped_count})"
                )
            except asyncio.QueueEmpty:
                pass

        self._queue.put_nowait(frame)
        return not dropped

    async def get(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """
        Wait for the next frame.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            Next frame, or None if the timeout expired.
        """
        try:
            if timeout is not None:
                return await asyncio.wait_for(self._queue.get(), timeout=timeout)
            return await self._queue.get()
        except asyncio.TimeoutError:
            return None

    def get_nowait(self) -> Optional[Frame]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def clear(self) -> int:
        """Discard all queued frames and return how many there were."""
        cleared = 0
        while self.get_nowait() is not None:
            cleared += 1
        return cleared

    def metrics(self) -> dict:
        return {
            "size": self.size,
            "maxsize": self._maxsize,
            "dropped_count": self._dropped_count,
            "total_put": self._total_put,
        }
