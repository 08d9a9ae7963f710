"""
Dev tools installer - detect development tools and install the missing ones.

Core Modules:
- Configuration: YAML tool catalog (tool list, versions, install methods)
- Detection: PATH lookup and heuristic version extraction
- Installation: Ordered install methods with spinner progress
"""

__version__ = "1.0.0"

VERSION = __version__

from .config import (
    ConfigError,
    InstallerError,
    InstallMethod,
    ToolCatalog,
    ToolSpec,
    load_catalog,
)
from .detection import VERSION_FLAGS, VERSION_MATCHERS, Detection, detect, extract_version
from .progress import ProgressIndicator
from .render import Console, OutputStyle
from .installer import (
    AllMethodsExhausted,
    CommandFailure,
    CommandResult,
    Installer,
    MethodResult,
    RunSummary,
    SpawnError,
    ToolResult,
    expand_command,
    install_all,
    run_command,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "__version__",
    "VERSION",
    # Configuration
    "ConfigError",
    "InstallerError",
    "InstallMethod",
    "ToolCatalog",
    "ToolSpec",
    "load_catalog",
    # Detection
    "VERSION_FLAGS",
    "VERSION_MATCHERS",
    "Detection",
    "detect",
    "extract_version",
    # Output
    "ProgressIndicator",
    "Console",
    "OutputStyle",
    # Installation
    "AllMethodsExhausted",
    "CommandFailure",
    "CommandResult",
    "Installer",
    "MethodResult",
    "RunSummary",
    "SpawnError",
    "ToolResult",
    "expand_command",
    "install_all",
    "run_command",
    # Logging
    "setup_logging",
    "get_logger",
]
