"""
Message passing between background workers and the Qt main thread.

Each long-running operation (download, model load, transcription) gets its
own single-producer/single-consumer ``Channel``. The worker sends messages and
closes the channel when it exits; the main thread observes it with a
``ChannelPoller`` that ticks on a short ``QTimer`` and never blocks.
"""

import queue
import threading
from typing import Any, Callable, List, Optional

from PySide6.QtCore import QObject, QTimer

from ..utils.logger import get_logger

logger = get_logger(__name__)

POLL_INTERVAL_MS = 100


class ChannelClosed(Exception):
    """Raised when the sender has exited and every message has been read."""


class Channel:
    """
    One-directional channel from a background thread to the main thread.

    ``send`` never blocks, so a slow consumer cannot stall the producer.
    Messages must not be ``None``.
    """

    def __init__(self):
        self._queue: "queue.SimpleQueue[Any]" = queue.SimpleQueue()
        self._closed = threading.Event()

    def send(self, message: Any) -> None:
        if message is None:
            raise ValueError("Cannot send None through a channel")
        self._queue.put(message)

    def close(self) -> None:
        self._closed.set()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def try_receive(self) -> Optional[Any]:
        """
        Return the next pending message, or None if nothing is pending.

        Raises:
            ChannelClosed: If the sender closed the channel and it is drained.
        """
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            pass

        if self._closed.is_set():
            # send() happens-before close(), so re-check once.
            try:
                return self._queue.get_nowait()
            except queue.Empty:
                raise ChannelClosed() from None

        return None

    def drain(self) -> List[Any]:
        """
        Return all pending messages in send order.

        Raises:
            ChannelClosed: If nothing is pending and the channel is closed.
        """
        messages = []
        while True:
            try:
                message = self.try_receive()
            except ChannelClosed:
                if messages:
                    return messages
                raise
            if message is None:
                return messages
            messages.append(message)


MessageHandler = Callable[[Any], bool]


class ChannelPoller(QObject):
    """
    Polls a channel from the main thread on a fixed interval.

    ``on_message`` returns True to keep polling or False once it has seen a
    terminal message. ``on_closed`` is called if the channel closes before
    a terminal message arrived. With ``latest_only`` only the newest message
    of each tick is handled, so progress updates never queue up.
    """

    def __init__(
        self,
        channel: Channel,
        on_message: MessageHandler,
        on_closed: Callable[[], None],
        latest_only: bool = False,
        interval_ms: int = POLL_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._channel = channel
        self._on_message = on_message
        self._on_closed = on_closed
        self._latest_only = latest_only

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.poll)
        self._finished = False

    @property
    def is_active(self) -> bool:
        return not self._finished

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        """Stop polling and drop the channel along with anything left in it."""
        self._finished = True
        self._timer.stop()
        self._channel = None

    def poll(self) -> bool:
        """Run one polling tick. Returns True while polling should continue."""
        if self._finished:
            return False

        try:
            messages = self._channel.drain()
        except ChannelClosed:
            logger.warning("Background channel closed without a final message")
            self.stop()
            self._on_closed()
            return False

        if self._latest_only:
            messages = messages[-1:]

        for message in messages:
            if not self._on_message(message):
                self.stop()
                return False

        return True
