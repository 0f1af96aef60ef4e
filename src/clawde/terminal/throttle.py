"""Adaptive output throttling.

Output from the wrapped program is buffered and written after a short
quiet period, collapsing bursts of redraws into one write. The quiet period
is shorter while the user is typing so echo stays responsive.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

FAST_DELAY = 0.016  # ~60fps while typing
SLOW_DELAY = 0.033  # ~30fps when idle
INPUT_TIMEOUT = 2.0  # Seconds after the last keystroke that count as typing


class OutputThrottle:
    """Debounce output chunks into batched writes.

    Args:
        write: Receives each flushed batch.
        fast_delay: Debounce delay within input_timeout of user input.
        slow_delay: Debounce delay otherwise.
        input_timeout: Seconds after mark_input() that use fast_delay.
        clock: Monotonic time source.

    """

    def __init__(
        self,
        write: Callable[[bytes], None],
        fast_delay: float = FAST_DELAY,
        slow_delay: float = SLOW_DELAY,
        input_timeout: float = INPUT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._write = write
        self.fast_delay = fast_delay
        self.slow_delay = slow_delay
        self.input_timeout = input_timeout
        self._clock = clock
        self._last_input: float | None = None
        self._buffer = bytearray()
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def mark_input(self) -> None:
        """Record user input activity."""
        with self._lock:
            self._last_input = self._clock()

    def current_delay(self) -> float:
        """Return the debounce delay for the current input activity."""
        last = self._last_input
        if last is not None and self._clock() - last < self.input_timeout:
            return self.fast_delay
        return self.slow_delay

    def feed(self, data: bytes) -> None:
        """Buffer output and restart the debounce timer."""
        if not data:
            return
        with self._lock:
            self._buffer += data
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.current_delay(), self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        """Write out everything buffered so far."""
        with self._lock:
            self._timer = None
            if not self._buffer:
                return
            data = bytes(self._buffer)
            self._buffer.clear()
            # Written under the lock so batches never reorder
            self._write(data)

    def close(self) -> None:
        """Cancel the timer and flush remaining output."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self.flush()
