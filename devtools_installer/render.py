"""
Output styling and status-line rendering.
"""

from __future__ import annotations

import os
import sys
import threading
from dataclasses import dataclass
from typing import TextIO


# Environment options
USE_COLOR = os.environ.get("DEVTOOLS_INSTALLER_COLOR", "1") == "1" and "NO_COLOR" not in os.environ

# ANSI color codes
RESET = "\033[0m"
BOLD_BLUE = "\033[1;34m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
GRAY = "\033[37m"

LINE_WIDTH = 80


@dataclass(frozen=True)
class OutputStyle:
    """
    Colors used for terminal narration.

    Every field is an escape sequence; the plain style has them all empty.
    """
    reset: str = RESET
    frame: str = BLUE
    header: str = BOLD_BLUE
    ok: str = GREEN
    fail: str = RED
    busy: str = YELLOW
    muted: str = GRAY

    @staticmethod
    def plain() -> OutputStyle:
        """Style without any escape sequences (tests, pipes, NO_COLOR)."""
        return OutputStyle(reset="", frame="", header="", ok="", fail="", busy="", muted="")

    @staticmethod
    def detect(stream: TextIO | None = None, use_color: bool | None = None) -> OutputStyle:
        """Pick colored or plain style for a stream."""
        if use_color is None:
            stream = stream or sys.stdout
            use_color = USE_COLOR and hasattr(stream, "isatty") and stream.isatty()
        return OutputStyle() if use_color else OutputStyle.plain()


class Console:
    """Writes framed status lines for a run.

    All writes go through one lock so the scanner thread and the primary
    thread never interleave partial lines.
    """

    def __init__(self, stream: TextIO | None = None, style: OutputStyle | None = None):
        self.stream = stream or sys.stdout
        self.style = style or OutputStyle.detect(self.stream)
        self._lock = threading.Lock()

    def write(self, text: str) -> None:
        with self._lock:
            self.stream.write(text)
            self.stream.flush()

    def line(self, text: str) -> None:
        self.write(text + "\n")

    def clear_line(self) -> None:
        self.write("\r" + " " * LINE_WIDTH + "\r")

    def _framed(self, color: str, text: str) -> None:
        s = self.style
        self.line(f"{s.frame}│{color} {text}{s.reset}")

    def header(self) -> None:
        s = self.style
        self.line(f"\n{s.header}╭─── System Tools Check ───╮{s.reset}")

    def tool_present(self, name: str, version: str) -> None:
        s = self.style
        shown = version if version else "Installed (version unknown)"
        self.line(f"{s.frame}│ {s.ok}✓ {name:<9}{s.reset} │ {shown}{s.reset}")

    def tool_missing(self, name: str) -> None:
        s = self.style
        self.line(f"{s.frame}│ {s.fail}✗ {name:<9}{s.reset} │ Not installed")

    def method_start(self, name: str, method: str) -> None:
        self._framed(self.style.busy, f"📦 Installing {name} using {method} method...")

    def command_failed(self, name: str, error: str) -> None:
        self._framed(self.style.fail, f"❌ Failed to install {name}: {error}")

    def tool_installed(self, name: str, method: str) -> None:
        self._framed(self.style.ok, f"✓ Installed {name} using {method} method")

    def tool_failed(self, name: str, error: str) -> None:
        self._framed(self.style.fail, f"Failed to install {name}: {error}")

    def dry_run(self, name: str, method: str, argv: list[str]) -> None:
        self._framed(self.style.muted, f"[dry-run] {name} ({method}): {' '.join(argv)}")

    def output_line(self, text: str) -> None:
        self._framed(self.style.muted, text)

    def summary(self, installed: int, total: int) -> None:
        s = self.style
        self.line(f"{s.frame}╰─── {s.ok}{installed}/{total} tools installed {s.frame}───╯{s.reset}\n")

    def error(self, text: str) -> None:
        s = self.style
        self.line(f"{s.fail}Error: {text}{s.reset}")
