"""
Local tool detection and version extraction.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable

from .config import ToolSpec

logger = logging.getLogger(__name__)

# Constants
TIMEOUT_SECONDS = float(os.environ.get("DEVTOOLS_INSTALLER_TIMEOUT_SECONDS", "5"))

VERSION_FLAGS = (
    "--version",  # Most common
    "-version",   # Some tools like subfinder
    "version",    # Tools like go, amass
    "-v",
    "-V",
    "--ver",
    "-ver",
)

VERSION_WORD_RE = re.compile(r"version\s+(v\d+\.\d+\.\d+)", re.IGNORECASE)
AMASS_RE = re.compile(r"amass\s+-\s+v\d+\.\d+\.\d+", re.IGNORECASE)
V_SEMVER_RE = re.compile(r"v\d+\.\d+\.\d+")
SEMVER_RE = re.compile(r"\d+\.\d+\.\d+")
GO_SEMVER_RE = re.compile(r"go\d+\.\d+\.\d+")
VERSION_LABEL_RE = re.compile(r"Version: (v\d+\.\d+\.\d+)")


def _match_version_word(text: str) -> str:
    m = VERSION_WORD_RE.search(text)
    return m.group(1) if m else ""


def _match_amass(text: str) -> str:
    m = AMASS_RE.search(text)
    if not m:
        return ""
    # "amass - v4.2.0" -> "4.2.0"
    return re.sub(r"^amass\s+-\s+", "", m.group(0), flags=re.IGNORECASE).lstrip("v")


def _match_v_semver(text: str) -> str:
    m = V_SEMVER_RE.search(text)
    return m.group(0) if m else ""


def _match_semver(text: str) -> str:
    m = SEMVER_RE.search(text)
    return m.group(0) if m else ""


def _match_go_semver(text: str) -> str:
    m = GO_SEMVER_RE.search(text)
    return m.group(0)[len("go"):] if m else ""


def _match_version_label(text: str) -> str:
    m = VERSION_LABEL_RE.search(text)
    return m.group(1) if m else ""


# Order matters: specific patterns first, generic ones would shadow them
VERSION_MATCHERS: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("version-word", _match_version_word),
    ("amass", _match_amass),
    ("v-semver", _match_v_semver),
    ("semver", _match_semver),
    ("go-semver", _match_go_semver),
    ("version-label", _match_version_label),
)


def extract_version(output: str) -> str:
    """Extract a display version from free-form command output.

    Matchers in VERSION_MATCHERS are tried in order and the first hit wins.
    Without a hit the first line of the output is returned, so the result is
    display text and not necessarily a parseable version.

    Args:
        output: Captured stdout/stderr of a version query

    Returns:
        Version string, first line of output, or empty string
    """
    text = output.strip()
    for _name, matcher in VERSION_MATCHERS:
        version = matcher(text)
        if version:
            return version
    return text.split("\n", 1)[0]


@dataclass(frozen=True)
class Detection:
    """
    Result of looking for a tool on the search path.

    Attributes:
        tool_name: Name that was looked up
        present: Whether an executable is resolvable via PATH
        version: Reported version, empty when absent or unknown
        path: Resolved executable path
    """
    tool_name: str
    present: bool
    version: str = ""
    path: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "tool_name": self.tool_name,
            "present": self.present,
            "version": self.version,
            "path": self.path,
        }


def find_executable(command_name: str) -> str | None:
    """Resolve a command on PATH, or None when it is not installed."""
    return shutil.which(command_name)


def probe_version(command_name: str, flag: str, timeout: float | None = None) -> str | None:
    """Run ``command_name flag`` and return its combined output.

    Args:
        command_name: Executable to query
        flag: Single version flag
        timeout: Timeout in seconds (default: TIMEOUT_SECONDS)

    Returns:
        Combined stdout/stderr, or None when the command could not run or exited non-zero
    """
    try:
        proc = subprocess.run(
            [command_name, flag],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,  # Isolate stdin
            text=True,
            timeout=timeout or TIMEOUT_SECONDS,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Version probe %s %s failed: %s", command_name, flag, e)
        return None

    if proc.returncode != 0:
        logger.debug("Version probe %s %s exited %d", command_name, flag, proc.returncode)
        return None
    return proc.stdout or ""


def get_tool_version(command_name: str, spec: ToolSpec | None = None) -> str:
    """Get the version of an installed tool.

    A fixed version from the catalog is returned without running anything.
    Otherwise the configured version flag, or each of VERSION_FLAGS in turn,
    is tried until one yields a non-empty version.

    Args:
        command_name: Executable name
        spec: Catalog entry for the tool, if any

    Returns:
        Version string or empty string if unknown
    """
    if spec is not None and spec.version:
        return spec.version

    flags: tuple[str, ...] = VERSION_FLAGS
    if spec is not None and spec.version_flag:
        flags = (spec.version_flag,)

    for flag in flags:
        output = probe_version(command_name, flag)
        if output is None:
            continue
        version = extract_version(output)
        if version:
            return version

    return ""


def detect(tool_name: str, spec: ToolSpec | None = None) -> Detection:
    """Detect whether a tool is installed and which version it reports.

    Args:
        tool_name: Executable name to look up
        spec: Catalog entry for the tool, if any

    Returns:
        Detection result; absence is a normal result, not an error
    """
    path = find_executable(tool_name)
    if not path:
        logger.debug("Tool not found: %s", tool_name)
        return Detection(tool_name=tool_name, present=False)

    logger.debug("Tool already installed: %s at %s", tool_name, path)
    return Detection(
        tool_name=tool_name,
        present=True,
        version=get_tool_version(tool_name, spec),
        path=path,
    )
