"""Pseudo-terminal session around the wrapped program.

PtySession spawns the command on a fresh pty in its own session (so the
whole process group can be terminated) and exposes write/read on the
master side. run_interactive() connects the user's terminal to it: raw
mode stdin, a select loop, SIGWINCH forwarding, and terminal restore on
exit.
"""

from __future__ import annotations

import contextlib
import errno
import fcntl
import logging
import os
import pty
import select
import signal
import struct
import subprocess
import termios
import threading
import time
import tty
from collections.abc import Mapping, Sequence
from subprocess import Popen

from clawde.core.exceptions import SessionError
from clawde.terminal.keys import EnterKeyRemapper
from clawde.terminal.throttle import OutputThrottle

logger = logging.getLogger(__name__)

DEFAULT_SUBMIT_DELAY = 0.1
_READ_SIZE = 4096
_SELECT_TIMEOUT = 0.05
_TERMINATE_WAIT = 3.0


def _set_controlling_tty() -> None:
    # Runs in the child after setsid(); stdin is already the pty slave
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


def get_window_size(fd: int) -> tuple[int, int] | None:
    """Return (rows, cols) of a terminal, or None if fd is not a terminal."""
    if not os.isatty(fd):
        return None
    try:
        packed = fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\0" * 8)
    except OSError as e:
        logger.debug("Failed to read terminal size: %s", e)
        return None
    rows, cols, _, _ = struct.unpack("HHHH", packed)
    return rows, cols


def build_child_env(
    base: Mapping[str, str] | None = None,
    force_ansi: bool = True,
) -> dict[str, str]:
    """Build the wrapped program's environment.

    With force_ansi, colour output is requested even though the program
    writes to a pty owned by clawde.
    """
    env = dict(os.environ if base is None else base)
    if force_ansi:
        env.setdefault("TERM", "xterm-256color")
        env.setdefault("FORCE_COLOR", "1")
    return env


class PtySession:
    """A command running on a pseudo-terminal.

    Args:
        argv: Command and arguments.
        env: Child environment (inherits os.environ when None).
        cwd: Child working directory.

    """

    def __init__(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> None:
        if not argv:
            raise SessionError("No command given")
        self.argv = list(argv)
        self.env = dict(env) if env is not None else None
        self.cwd = cwd
        self.master_fd: int | None = None
        self.process: Popen[bytes] | None = None
        self._write_lock = threading.Lock()

    def start(self, window_size: tuple[int, int] | None = None) -> None:
        """Spawn the command.

        Args:
            window_size: Initial (rows, cols) for the pty.

        Raises:
            SessionError: If the command cannot be executed.

        """
        master_fd, slave_fd = pty.openpty()
        if window_size is not None:
            self._apply_window_size(master_fd, *window_size)
        try:
            self.process = Popen(
                self.argv,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                env=self.env,
                cwd=self.cwd,
                start_new_session=True,  # Own process group for clean termination
                preexec_fn=_set_controlling_tty,
            )
        except OSError as e:
            os.close(master_fd)
            raise SessionError(f"Failed to start {self.argv[0]}: {e}") from e
        finally:
            os.close(slave_fd)

        self.master_fd = master_fd
        logger.info("Started %s (pid %d)", " ".join(self.argv), self.process.pid)

    @staticmethod
    def _apply_window_size(fd: int, rows: int, cols: int) -> None:
        fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))

    def resize(self, rows: int, cols: int) -> None:
        """Set the pty window size (the child receives SIGWINCH)."""
        if self.master_fd is None:
            return
        try:
            self._apply_window_size(self.master_fd, rows, cols)
        except OSError as e:
            logger.warning("Failed to resize pty: %s", e)
            return
        logger.debug("Set pty size to %dx%d", rows, cols)

    def _require_fd(self) -> int:
        if self.master_fd is None:
            raise SessionError("Session is not running")
        return self.master_fd

    def write(self, data: bytes) -> None:
        """Write bytes to the program's terminal input.

        Raises:
            SessionError: If the session is closed or the write fails.

        """
        with self._write_lock:
            self._write_all(data)

    def _write_all(self, data: bytes) -> None:
        fd = self._require_fd()
        view = memoryview(data)
        while view:
            try:
                written = os.write(fd, view)
            except OSError as e:
                raise SessionError(f"Failed to write to session: {e}") from e
            view = view[written:]

    def send_prompt(self, text: str, submit_delay: float = DEFAULT_SUBMIT_DELAY) -> None:
        """Type a prompt and submit it.

        The text and the submitting carriage return are written separately
        with a pause between them; sent together, the program treats the
        Enter as part of a paste.

        Args:
            text: Prompt text.
            submit_delay: Seconds between text and Enter.

        """
        with self._write_lock:
            # Undecodable filename bytes in the text go out as the original bytes
            self._write_all(text.encode("utf-8", "surrogateescape"))
            time.sleep(submit_delay)
            self._write_all(b"\r")
        logger.debug("Sent prompt (%d chars)", len(text))

    def read(self, size: int = _READ_SIZE) -> bytes:
        """Read available output; returns b"" once the program has exited."""
        fd = self._require_fd()
        try:
            return os.read(fd, size)
        except OSError as e:
            # Linux reports EIO on the master once the slave side is gone
            if e.errno == errno.EIO:
                return b""
            raise

    def poll(self) -> int | None:
        """Return the exit code, or None while running."""
        return self.process.poll() if self.process is not None else None

    def wait(self, timeout: float | None = None) -> int:
        """Wait for the program to exit and return its exit code."""
        if self.process is None:
            raise SessionError("Session was never started")
        return self.process.wait(timeout)

    def _terminate(self) -> None:
        process = self.process
        if process is None or process.poll() is not None:
            return
        try:
            pgid = os.getpgid(process.pid)
        except (ProcessLookupError, OSError):
            return

        logger.info("Terminating process group %d (SIGTERM)", pgid)
        try:
            os.killpg(pgid, signal.SIGTERM)
        except (ProcessLookupError, OSError):
            return
        try:
            process.wait(_TERMINATE_WAIT)
            return
        except subprocess.TimeoutExpired:
            pass

        logger.warning("Process did not terminate, escalating to SIGKILL")
        with contextlib.suppress(ProcessLookupError, OSError):
            os.killpg(pgid, signal.SIGKILL)

    def close(self) -> None:
        """Terminate the program if still running and release the pty."""
        self._terminate()
        if self.master_fd is not None:
            with contextlib.suppress(OSError):
                os.close(self.master_fd)
            self.master_fd = None


def _write_stdout(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        try:
            written = os.write(fd, view)
        except BlockingIOError:
            select.select([], [fd], [])
            continue
        view = view[written:]


def run_interactive(
    session: PtySession,
    remapper: EnterKeyRemapper | None = None,
    *,
    output_throttling: bool = True,
    input_tracking: bool = True,
    stdin_fd: int = 0,
    stdout_fd: int = 1,
) -> int:
    """Connect the user's terminal to a started session until it exits.

    Args:
        session: Started PtySession.
        remapper: Enter key remapper for user input (plain passthrough
            when None).
        output_throttling: Debounce program output.
        input_tracking: Use the fast debounce delay while the user types.
        stdin_fd: User terminal input.
        stdout_fd: User terminal output.

    Returns:
        The program's exit code.

    """
    if session.master_fd is None:
        raise SessionError("Session is not running")
    master_fd = session.master_fd
    resize_pending = threading.Event()
    saved_attrs = None
    previous_winch = None

    throttle: OutputThrottle | None = None
    if output_throttling:
        throttle = OutputThrottle(lambda data: _write_stdout(stdout_fd, data))
    if remapper is not None and remapper.on_deferred is None:
        remapper.on_deferred = session.write

    if os.isatty(stdin_fd):
        saved_attrs = termios.tcgetattr(stdin_fd)
        tty.setraw(stdin_fd)
    if threading.current_thread() is threading.main_thread():
        previous_winch = signal.signal(signal.SIGWINCH, lambda signum, frame: resize_pending.set())
    resize_pending.set()

    read_fds = [stdin_fd, master_fd]
    try:
        while True:
            if resize_pending.is_set():
                resize_pending.clear()
                size = get_window_size(stdin_fd)
                if size is not None:
                    session.resize(*size)

            readable, _, _ = select.select(read_fds, [], [], _SELECT_TIMEOUT)

            if master_fd in readable:
                data = session.read()
                if not data:
                    break
                if throttle is not None:
                    throttle.feed(data)
                else:
                    _write_stdout(stdout_fd, data)

            if stdin_fd in readable:
                data = os.read(stdin_fd, 1024)
                if not data:
                    logger.debug("User input closed")
                    read_fds.remove(stdin_fd)
                    continue
                if throttle is not None and input_tracking:
                    throttle.mark_input()
                if remapper is not None:
                    data = remapper.remap(data)
                if data:
                    session.write(data)
    finally:
        if throttle is not None:
            throttle.close()
        if remapper is not None:
            remapper.close()
        if saved_attrs is not None:
            termios.tcsetattr(stdin_fd, termios.TCSAFLUSH, saved_attrs)
        if previous_winch is not None:
            signal.signal(signal.SIGWINCH, previous_winch)

    exit_code = session.wait()
    logger.info("Wrapped program exited with code %d", exit_code)
    return exit_code
