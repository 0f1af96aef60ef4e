"""Enter key remapping for multi-line input.

The wrapped assistant submits on Enter. Remapping makes Enter insert a
line break (backslash + Enter) and makes Ctrl+J the real submit key.
With held-Enter detection, holding Enter down also submits: the first
presses are deferred, and once the repeat threshold is reached they are
dropped in favour of a single real Enter.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

CR = 0x0D
LF = 0x0A  # Ctrl+J
ENTER = b"\r"
LINE_BREAK = b"\\\r"

DEFAULT_HELD_THRESHOLD = 3
DEFAULT_HELD_INTERVAL = 0.5


class KeyRepeatDetector:
    """Detect a key being held down from rapid repeated presses.

    Args:
        threshold: Consecutive presses needed to count as held.
        max_interval: Max seconds between presses to count as consecutive.
        clock: Monotonic time source.

    """

    def __init__(
        self,
        threshold: int = DEFAULT_HELD_THRESHOLD,
        max_interval: float = DEFAULT_HELD_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.max_interval = max_interval
        self._clock = clock
        self._count = 0
        self._last = 0.0

    def press(self) -> bool:
        """Register a press and return True once the key counts as held."""
        now = self._clock()
        if self._count == 0 or now - self._last > self.max_interval:
            self._count = 1
        else:
            self._count += 1
        self._last = now
        return self._count >= self.threshold

    def reset(self) -> None:
        """Forget the current run (another key was pressed)."""
        self._count = 0


class EnterKeyRemapper:
    """Rewrite Enter and Ctrl+J in user input.

    Args:
        held_enter_detection: Defer Enter presses to detect a held key.
        detector: Repeat detector (a default one is created when None).
        on_deferred: Receives deferred line breaks when no further key
            arrives within the detector interval. Without it, deferred
            breaks are only released by the next key.

    """

    def __init__(
        self,
        held_enter_detection: bool = False,
        detector: KeyRepeatDetector | None = None,
        on_deferred: Callable[[bytes], None] | None = None,
    ) -> None:
        self.held_enter_detection = held_enter_detection
        self.detector = detector or KeyRepeatDetector()
        self.on_deferred = on_deferred
        self._pending = 0
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def remap(self, data: bytes) -> bytes:
        """Translate one chunk of user input.

        Args:
            data: Raw bytes read from the terminal.

        Returns:
            Bytes to forward to the wrapped program.

        """
        out = bytearray()
        with self._lock:
            for byte in data:
                if byte == CR:
                    out += self._enter()
                    continue
                out += self._take_pending()
                if self.held_enter_detection:
                    self.detector.reset()
                if byte == LF:
                    out += ENTER
                else:
                    out.append(byte)
        return bytes(out)

    def _enter(self) -> bytes:
        if not self.held_enter_detection:
            return LINE_BREAK
        if self.detector.press():
            if self._pending:
                logger.debug("Held Enter detected, dropping %d deferred breaks", self._pending)
            self._pending = 0
            self._cancel_timer()
            return ENTER
        self._pending += 1
        self._schedule_timer()
        return b""

    def _take_pending(self) -> bytes:
        self._cancel_timer()
        pending, self._pending = self._pending, 0
        return LINE_BREAK * pending

    def _schedule_timer(self) -> None:
        if self.on_deferred is None:
            return
        self._cancel_timer()
        self._timer = threading.Timer(self.detector.max_interval, self._on_timeout)
        self._timer.daemon = True
        self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timeout(self) -> None:
        with self._lock:
            if threading.current_thread() is not self._timer:
                # Superseded by a newer press
                return
            self._timer = None
            data = LINE_BREAK * self._pending
            self._pending = 0
            self.detector.reset()
        if data and self.on_deferred is not None:
            self.on_deferred(data)

    def close(self) -> None:
        """Cancel the deferral timer."""
        with self._lock:
            self._cancel_timer()
