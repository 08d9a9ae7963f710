"""
Spinner progress indicator shown while an install command runs.
"""

from __future__ import annotations

import threading

from .render import Console

SPINNER_CHARS = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
TICK_SECONDS = 0.08


class ProgressIndicator:
    """
    Repaints one status line with a rotating spinner until stopped.

    Single use: after stop() a new instance is needed to spin again.

    Attributes:
        message: Text shown next to the spinner
        console: Output target and style
        interval: Seconds between repaints
    """

    def __init__(self, message: str, console: Console | None = None, interval: float = TICK_SECONDS):
        self.message = message
        self.console = console or Console()
        self.interval = interval
        self._lock = threading.Lock()
        self._stopped = False
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and not self._stopped

    def start(self) -> ProgressIndicator:
        """Launch the render thread. Calling start twice is a no-op."""
        with self._lock:
            if self._thread is not None or self._stopped:
                return self
            self._thread = threading.Thread(
                target=self._render_loop,
                name=f"progress:{self.message}",
                daemon=True,
            )
            self._thread.start()
        return self

    def stop(self) -> None:
        """Stop the render thread and clear the status line.

        Once this returns the render thread has exited, so nothing else will
        be written by this indicator. Repeated calls do nothing.
        """
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            thread = self._thread
        self._wake.set()
        if thread is None:
            return
        if thread is not threading.current_thread():
            thread.join()
        self.console.clear_line()

    def _render_loop(self) -> None:
        style = self.console.style
        tick = 0
        while True:
            # The flag check and the write share the lock so stop() cannot
            # slip in between them.
            with self._lock:
                if self._stopped:
                    return
                glyph = SPINNER_CHARS[tick % len(SPINNER_CHARS)]
                self.console.write(f"\r{style.frame}│ {style.busy}{glyph} {self.message}{style.reset}")
            tick += 1
            self._wake.wait(self.interval)

    def __enter__(self) -> ProgressIndicator:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
