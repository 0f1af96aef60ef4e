"""Terminal plumbing: pty session, output throttling and key remapping."""

from clawde.terminal.keys import EnterKeyRemapper, KeyRepeatDetector
from clawde.terminal.session import PtySession, build_child_env, run_interactive
from clawde.terminal.throttle import OutputThrottle

__all__ = [
    "EnterKeyRemapper",
    "KeyRepeatDetector",
    "OutputThrottle",
    "PtySession",
    "build_child_env",
    "run_interactive",
]
