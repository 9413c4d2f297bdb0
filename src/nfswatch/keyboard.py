"""Non-blocking check for the quit key on the controlling terminal."""

import os
import sys
from typing import Callable, Optional, TextIO

QUIT_KEY = "q"


def make_quit_key_poller(stream: Optional[TextIO] = None) -> Callable[[], bool]:
    """
    Build a callable that reports whether the quit key was pressed.

    On Windows a single "q" keypress is enough. Elsewhere the terminal is
    line-buffered, so "q" must be followed by Enter. When the stream is not
    an interactive terminal the poller always returns False.

    Args:
        stream: Input stream to watch (defaults to sys.stdin)

    Returns:
        Zero-argument callable, safe to call once per poll cycle
    """
    stream = stream or sys.stdin
    try:
        interactive = stream.isatty()
    except (AttributeError, ValueError):
        interactive = False
    if not interactive:
        return lambda: False

    if os.name == "nt":
        import msvcrt

        def poll_windows() -> bool:
            while msvcrt.kbhit():
                if msvcrt.getwch().lower() == QUIT_KEY:
                    return True
            return False

        return poll_windows

    import select

    def poll_posix() -> bool:
        ready, _, _ = select.select([stream], [], [], 0)
        if not ready:
            return False
        line = stream.readline()
        return line.strip().lower() == QUIT_KEY

    return poll_posix
