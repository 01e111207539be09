"""
Keypress handling for ShellScribe.

This module lets the user stop a streaming explanation with q or Esc. A
KeypressListener watches stdin and cancels a shared CancellationToken that
the stream reader checks between payloads.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)

ESCAPE = "\x1b"
DEFAULT_STOP_KEYS = ("q", "escape")


class CancellationToken:
    """Cooperative stop flag shared between a key listener and a stream reader."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


def key_name(ch: str) -> str:
    if ch == ESCAPE:
        return "escape"
    return ch.lower()


class KeypressListener:
    """
    Watch stdin for stop keys while a stream is being rendered.

    Unix: stdin is switched to cbreak mode and read through the running event
    loop. Windows: msvcrt is polled from a background task. When stdin is not
    a terminal the listener does nothing. The terminal mode is restored on
    every exit path.
    """

    def __init__(
        self,
        token: CancellationToken,
        stop_keys: Iterable[str] = DEFAULT_STOP_KEYS,
        stream=None,
    ) -> None:
        self.token = token
        self.stop_keys = {key.lower() for key in stop_keys}
        self.stream = stream if stream is not None else sys.stdin
        self._fd: Optional[int] = None
        self._old_settings = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._poller: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._fd is not None or self._poller is not None

    def _is_terminal(self) -> bool:
        try:
            return self.stream.isatty()
        except (AttributeError, ValueError):
            return False

    def handle_key(self, ch: str) -> None:
        if key_name(ch) in self.stop_keys:
            logger.debug("Stop key pressed, cancelling stream")
            self.token.cancel()

    def _on_readable(self) -> None:
        text = os.read(self._fd, 32).decode("utf-8", errors="ignore")
        if text.startswith(ESCAPE) and len(text) > 1:
            # Arrow keys and other escape sequences, not a bare ESC
            return
        for ch in text:
            self.handle_key(ch)

    async def _poll_windows(self, getwch: Callable[[], str], kbhit: Callable[[], bool]):
        while True:
            while kbhit():
                self.handle_key(getwch())
            await asyncio.sleep(0.05)

    def __enter__(self) -> "KeypressListener":
        if not self._is_terminal():
            return self

        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            return self

        if sys.platform.startswith("win"):
            import msvcrt  # type: ignore

            self._poller = self._loop.create_task(
                self._poll_windows(msvcrt.getwch, msvcrt.kbhit)
            )
            return self

        import termios
        import tty

        fd = self.stream.fileno()
        self._old_settings = termios.tcgetattr(fd)
        try:
            tty.setcbreak(fd)
            self._loop.add_reader(fd, self._on_readable)
        except BaseException:
            termios.tcsetattr(fd, termios.TCSADRAIN, self._old_settings)
            raise
        self._fd = fd
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None

        if self._fd is not None:
            import termios

            try:
                self._loop.remove_reader(self._fd)
            finally:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_settings)
                self._fd = None
