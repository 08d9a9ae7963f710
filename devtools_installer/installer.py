"""
Installation execution.

Runs each tool's installation methods in priority order, executing every
method's commands in sequence until one method completes without a failing
command.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .config import InstallerError, InstallMethod, ToolCatalog, ToolSpec
from .detection import Detection, detect
from .progress import ProgressIndicator
from .render import Console

logger = logging.getLogger(__name__)

VERSION_PLACEHOLDER = "${version}"
FETCH_MARKERS = ("go install", "go get")
SURFACED_MARKER = "downloading"

STATUS_PRESENT = "present"
STATUS_INSTALLED = "installed"
STATUS_FAILED = "failed"
STATUS_PLANNED = "planned"


class SpawnError(InstallerError):
    """Command executable could not be started."""
    def __init__(self, argv: list[str], reason: str):
        self.argv = argv
        super().__init__(f"failed to start command: {' '.join(argv)}: {reason}")


class CommandFailure(InstallerError):
    """
    Command ran but did not exit zero.

    Attributes:
        argv: Command that failed
        exit_code: Process exit code (-1 when killed after a timeout)
    """
    def __init__(self, argv: list[str], exit_code: int, message: str | None = None):
        self.argv = argv
        self.exit_code = exit_code
        super().__init__(message or f"exit status {exit_code}")


class AllMethodsExhausted(InstallerError):
    """Every installation method of a tool failed."""
    def __init__(self, tool_name: str, attempts: tuple[MethodResult, ...] = ()):
        self.tool_name = tool_name
        self.attempts = attempts
        super().__init__(f"all installation methods failed for {tool_name}")


@dataclass(frozen=True)
class CommandResult:
    """
    Result of running one command.

    Attributes:
        argv: Program and arguments actually executed
        success: Whether the command exited zero
        exit_code: Process exit code, -1 when it never ran or was killed
        duration_seconds: Wall time of the command
        error_message: Failure text if the command failed
        surfaced_lines: Output lines that were shown to the user
    """
    argv: tuple[str, ...]
    success: bool
    exit_code: int
    duration_seconds: float
    error_message: str | None = None
    surfaced_lines: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "argv": list(self.argv),
            "success": self.success,
            "exit_code": self.exit_code,
            "duration_seconds": self.duration_seconds,
            "error_message": self.error_message,
            "surfaced_lines": list(self.surfaced_lines),
        }


@dataclass(frozen=True)
class MethodResult:
    """Outcome of one installation method attempt."""
    method_name: str
    success: bool
    commands: tuple[CommandResult, ...] = ()
    error_message: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "method_name": self.method_name,
            "success": self.success,
            "commands": [c.to_dict() for c in self.commands],
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class ToolResult:
    """
    Final state of a tool after a run.

    Attributes:
        tool_name: Name from tool_list
        status: present, installed, failed or planned (dry run)
        version: Detected version when already present
        method_used: Method that installed the tool
        attempts: Every method attempted, in order
        error_message: Failure text when status is failed
    """
    tool_name: str
    status: str
    version: str = ""
    method_used: str | None = None
    attempts: tuple[MethodResult, ...] = ()
    error_message: str | None = None

    @property
    def installed(self) -> bool:
        return self.status in (STATUS_PRESENT, STATUS_INSTALLED)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "tool_name": self.tool_name,
            "status": self.status,
            "version": self.version,
            "method_used": self.method_used,
            "attempts": [a.to_dict() for a in self.attempts],
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class RunSummary:
    """Results of one pass over tool_list."""
    results: tuple[ToolResult, ...] = ()
    duration_seconds: float = 0.0

    @property
    def installed(self) -> int:
        return sum(1 for r in self.results if r.installed)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failures(self) -> tuple[ToolResult, ...]:
        return tuple(r for r in self.results if r.status == STATUS_FAILED)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "installed": self.installed,
            "total": self.total,
            "duration_seconds": self.duration_seconds,
            "results": [r.to_dict() for r in self.results],
        }


def expand_command(command: str | tuple[str, ...], version: str = "") -> list[str]:
    """
    Turn a command template into argv.

    ``${version}`` is replaced first (when a fixed version is known) so an
    environment variable called ``version`` cannot shadow it, then environment
    variables that are set are expanded. String commands are split on
    whitespace with no quoting rules.

    Args:
        command: Command line or structured argv from the catalog
        version: Fixed tool version, empty if none

    Returns:
        Argument list, empty for a blank command
    """
    def substitute(text: str) -> str:
        if version:
            text = text.replace(VERSION_PLACEHOLDER, version)
        return os.path.expandvars(text)

    if isinstance(command, tuple):
        return [substitute(arg) for arg in command]
    return substitute(command).split()


def is_fetch_command(command: str | tuple[str, ...]) -> bool:
    """Whether a command template is a Go package fetch whose progress is worth showing."""
    text = " ".join(command) if isinstance(command, tuple) else command
    return any(marker in text for marker in FETCH_MARKERS)


def should_surface(line: str) -> bool:
    return SURFACED_MARKER in line


class _OutputScanner(threading.Thread):
    """Drains merged process output, surfacing selected lines past the spinner."""

    def __init__(
        self,
        stream,
        indicator: ProgressIndicator,
        new_indicator: Callable[[], ProgressIndicator],
        console: Console,
        surface: bool,
    ):
        super().__init__(name="output-scanner", daemon=True)
        self.stream = stream
        self.indicator = indicator
        self.new_indicator = new_indicator
        self.console = console
        self.surface = surface
        self.surfaced: list[str] = []

    def run(self) -> None:
        for raw in self.stream:
            line = raw.rstrip("\r\n")
            if not (self.surface and should_surface(line)):
                continue
            # Pause the spinner, print the line, spin again on a fresh line
            self.indicator.stop()
            self.console.output_line(line)
            self.surfaced.append(line)
            self.indicator = self.new_indicator()


def _kill(proc: subprocess.Popen, group: bool) -> None:
    """Kill a command, and with ``group`` every process in its session."""
    if not group:
        proc.kill()
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def run_command(
    argv: list[str],
    label: str,
    console: Console,
    surface: bool = False,
    timeout: float | None = None,
) -> CommandResult:
    """
    Run one command behind a progress indicator.

    Output is merged and drained on a scanner thread. The process exit, the
    scanner and the indicator are all finished before this returns.

    With a timeout the command runs in its own session so that a timeout
    kills everything it spawned (sudo, sh -c, ...); otherwise it shares the
    terminal so interactive prompts keep working.

    Args:
        argv: Program and arguments
        label: Progress message
        console: Output target
        surface: Show lines containing "downloading"
        timeout: Kill the command after this many seconds (None waits forever)

    Returns:
        CommandResult for a zero exit

    Raises:
        SpawnError: If the program could not be started
        CommandFailure: If the program exited non-zero or timed out
    """
    start_time = time.time()
    logger.debug("Executing: %s", " ".join(argv))
    isolate = timeout is not None

    try:
        proc = subprocess.Popen(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            start_new_session=isolate,
        )
    except OSError as e:
        raise SpawnError(argv, e.strerror or str(e)) from e

    def new_indicator() -> ProgressIndicator:
        return ProgressIndicator(label, console).start()

    scanner = _OutputScanner(proc.stdout, new_indicator(), new_indicator, console, surface)
    scanner.start()

    timed_out = False
    try:
        try:
            exit_code = proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            _kill(proc, isolate)
            exit_code = proc.wait()
    finally:
        if proc.poll() is None:
            _kill(proc, isolate)
            proc.wait()
        scanner.join()
        # Only read after join: the scanner may have swapped indicators
        scanner.indicator.stop()
        if proc.stdout is not None:
            proc.stdout.close()

    duration = time.time() - start_time
    logger.debug("Command %s exited %d after %.1fs", argv[0], exit_code, duration)

    if timed_out:
        raise CommandFailure(argv, -1, f"command timed out after {timeout}s")
    if exit_code != 0:
        raise CommandFailure(argv, exit_code)

    return CommandResult(
        argv=tuple(argv),
        success=True,
        exit_code=exit_code,
        duration_seconds=duration,
        surfaced_lines=tuple(scanner.surfaced),
    )


@dataclass
class Installer:
    """
    Checks every tool in a catalog and installs the missing ones.

    Attributes:
        catalog: Loaded tool catalog
        console: Output target for narration
        use_default: Apply the ``default`` entry to unconfigured tools
        timeout: Per-command timeout in seconds, None to wait indefinitely
        dry_run: Show install commands instead of running them
    """
    catalog: ToolCatalog
    console: Console = field(default_factory=Console)
    use_default: bool = False
    timeout: float | None = None
    dry_run: bool = False

    def run(self) -> RunSummary:
        """Process tool_list once and print the summary line."""
        start_time = time.time()
        self.console.header()

        results = [self.process_tool(name) for name in self.catalog.tool_list]

        summary = RunSummary(results=tuple(results), duration_seconds=time.time() - start_time)
        self.console.summary(summary.installed, summary.total)
        return summary

    def process_tool(self, tool_name: str) -> ToolResult:
        """Detect one tool and install it if missing. Never raises InstallerError."""
        spec = self.catalog.spec_for(tool_name, use_default=self.use_default)

        detection = self.check_tool(tool_name, spec)
        if detection.present:
            return ToolResult(tool_name=tool_name, status=STATUS_PRESENT, version=detection.version)

        if self.dry_run:
            return self.plan_tool(tool_name, spec)

        try:
            return self.install_tool(tool_name, spec)
        except AllMethodsExhausted as e:
            self.console.tool_failed(tool_name, e.message)
            return ToolResult(
                tool_name=tool_name,
                status=STATUS_FAILED,
                attempts=e.attempts,
                error_message=e.message,
            )
        except InstallerError as e:
            self.console.tool_failed(tool_name, e.message)
            return ToolResult(tool_name=tool_name, status=STATUS_FAILED, error_message=e.message)

    def check_tool(self, tool_name: str, spec: ToolSpec | None = None) -> Detection:
        detection = detect(tool_name, spec)
        if detection.present:
            self.console.tool_present(tool_name, detection.version)
        else:
            self.console.tool_missing(tool_name)
        return detection

    def install_tool(self, tool_name: str, spec: ToolSpec | None) -> ToolResult:
        """
        Try each installation method until one succeeds.

        Raises:
            InstallerError: If the tool has no installation methods
            AllMethodsExhausted: If every method failed
        """
        if spec is None or not spec.methods:
            raise InstallerError(f"no installation methods available for {tool_name}")

        attempts: list[MethodResult] = []
        for method in spec.methods:
            self.console.method_start(tool_name, method.name)
            result = self.install_method(tool_name, spec, method)
            attempts.append(result)
            if result.success:
                self.console.tool_installed(tool_name, method.name)
                return ToolResult(
                    tool_name=tool_name,
                    status=STATUS_INSTALLED,
                    method_used=method.name,
                    attempts=tuple(attempts),
                )

        raise AllMethodsExhausted(tool_name, tuple(attempts))

    def install_method(self, tool_name: str, spec: ToolSpec, method: InstallMethod) -> MethodResult:
        """Run a method's commands in order, stopping at the first failure."""
        completed: list[CommandResult] = []

        for command in method.commands:
            argv = expand_command(command, spec.version)
            if not argv:
                continue

            label = f"Installing {tool_name} ({method.name}): {os.path.basename(argv[0])}"
            start_time = time.time()
            try:
                result = run_command(
                    argv,
                    label,
                    self.console,
                    surface=is_fetch_command(command),
                    timeout=self.timeout,
                )
            except (SpawnError, CommandFailure) as e:
                logger.debug("Method %s for %s failed: %s", method.name, tool_name, e.message)
                self.console.command_failed(tool_name, e.message)
                completed.append(CommandResult(
                    argv=tuple(argv),
                    success=False,
                    exit_code=getattr(e, "exit_code", -1),
                    duration_seconds=time.time() - start_time,
                    error_message=e.message,
                ))
                return MethodResult(
                    method_name=method.name,
                    success=False,
                    commands=tuple(completed),
                    error_message=e.message,
                )
            completed.append(result)

        if not completed:
            message = "no commands to run"
            self.console.command_failed(tool_name, message)
            return MethodResult(method_name=method.name, success=False, error_message=message)

        return MethodResult(method_name=method.name, success=True, commands=tuple(completed))

    def plan_tool(self, tool_name: str, spec: ToolSpec | None) -> ToolResult:
        """Dry run: print what the first method would execute."""
        if spec is None or not spec.methods:
            message = f"no installation methods available for {tool_name}"
            self.console.tool_failed(tool_name, message)
            return ToolResult(tool_name=tool_name, status=STATUS_FAILED, error_message=message)

        method = spec.methods[0]
        for command in method.commands:
            argv = expand_command(command, spec.version)
            if argv:
                self.console.dry_run(tool_name, method.name, argv)
        return ToolResult(tool_name=tool_name, status=STATUS_PLANNED, method_used=method.name)


def install_all(
    catalog: ToolCatalog,
    console: Console | None = None,
    use_default: bool = False,
    timeout: float | None = None,
    dry_run: bool = False,
) -> RunSummary:
    """Convenience wrapper: build an Installer and run it once."""
    installer = Installer(
        catalog=catalog,
        console=console or Console(),
        use_default=use_default,
        timeout=timeout,
        dry_run=dry_run,
    )
    return installer.run()
