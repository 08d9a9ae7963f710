"""
Configuration file parsing for the tool catalog.

The catalog is a YAML document listing the tools to check (``tool_list``) and,
per tool, how to install it (``tools``). It is loaded once at startup and never
modified afterwards.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.environ.get("DEVTOOLS_INSTALLER_CONFIG", "installer.yaml")
DEFAULT_TOOL_KEY = "default"
TOOL_NAME_PLACEHOLDER = "${TOOL_NAME}"


class CatalogLoader(yaml.SafeLoader):
    """SafeLoader that keeps numeric-looking scalars as their source text.

    Every value in the catalog is text, and ``version: 1.20`` must stay
    ``"1.20"`` rather than become the float ``1.2``.
    """


CatalogLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp) for tag, regexp in resolvers
        if tag not in ("tag:yaml.org,2002:int", "tag:yaml.org,2002:float")
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class InstallerError(Exception):
    """
    Base exception for installer errors.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
    """
    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class ConfigError(InstallerError):
    """Configuration file could not be read or does not match the expected schema."""


def _expect(value: Any, kind: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(value, kind):
        names = kind.__name__ if isinstance(kind, type) else " or ".join(k.__name__ for k in kind)
        raise ConfigError(f"{where}: expected {names}, got {type(value).__name__}")
    return value


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    items = _expect(value, list, where)
    for index, item in enumerate(items):
        _expect(item, str, f"{where}[{index}]")
    return tuple(items)


def _parse_command(value: Any, where: str) -> str | tuple[str, ...]:
    if isinstance(value, list):
        return _string_list(value, where)
    return _expect(value, str, where)


@dataclass(frozen=True)
class InstallMethod:
    """
    One way of installing a tool.

    Attributes:
        name: Label used in progress messages
        commands: Commands executed in order; every one must exit zero.
            A string is whitespace-split into argv, a tuple is used as argv.
    """
    name: str
    commands: tuple[str | tuple[str, ...], ...] = ()

    @staticmethod
    def from_dict(data: dict[str, Any], where: str = "method") -> InstallMethod:
        """Create InstallMethod from dictionary."""
        _expect(data, dict, where)
        raw_commands = data.get("commands") or []
        _expect(raw_commands, list, f"{where}.commands")
        return InstallMethod(
            name=str(data.get("name") or ""),
            commands=tuple(
                _parse_command(command, f"{where}.commands[{index}]")
                for index, command in enumerate(raw_commands)
            ),
        )


@dataclass(frozen=True)
class ToolSpec:
    """
    Installation metadata for a single tool.

    Attributes:
        dependencies: Declared prerequisite tools (informational, never enforced)
        version: Fixed version; reported as-is and substituted for ``${version}``
        version_flag: Single flag used to query the version instead of the defaults
        methods: Installation methods in priority order
    """
    dependencies: tuple[str, ...] = ()
    version: str = ""
    version_flag: str = ""
    methods: tuple[InstallMethod, ...] = ()

    @staticmethod
    def from_dict(data: dict[str, Any] | None, where: str = "tool") -> ToolSpec:
        """Create ToolSpec from dictionary."""
        if data is None:
            return ToolSpec()
        _expect(data, dict, where)
        raw_methods = data.get("methods") or []
        _expect(raw_methods, list, f"{where}.methods")
        version = data.get("version")
        version_flag = data.get("version_flag")
        return ToolSpec(
            dependencies=_string_list(data.get("dependencies"), f"{where}.dependencies"),
            version="" if version is None else str(version),
            version_flag="" if version_flag is None else str(version_flag),
            methods=tuple(
                InstallMethod.from_dict(method, f"{where}.methods[{index}]")
                for index, method in enumerate(raw_methods)
            ),
        )

    def for_tool(self, tool_name: str) -> ToolSpec:
        """Materialise a template spec for ``tool_name`` by filling ``${TOOL_NAME}``."""
        def fill(command: str | tuple[str, ...]) -> str | tuple[str, ...]:
            if isinstance(command, tuple):
                return tuple(arg.replace(TOOL_NAME_PLACEHOLDER, tool_name) for arg in command)
            return command.replace(TOOL_NAME_PLACEHOLDER, tool_name)

        return ToolSpec(
            dependencies=self.dependencies,
            version=self.version,
            version_flag=self.version_flag,
            methods=tuple(
                InstallMethod(name=m.name, commands=tuple(fill(c) for c in m.commands))
                for m in self.methods
            ),
        )


@dataclass(frozen=True)
class ToolCatalog:
    """
    Complete tool catalog.

    Attributes:
        tool_list: Tool names to process, in order
        tools: Per-tool installation metadata
        source: Path of the file the catalog was loaded from
    """
    tool_list: tuple[str, ...] = ()
    tools: dict[str, ToolSpec] = field(default_factory=dict)
    source: str = ""

    @staticmethod
    def from_dict(data: dict[str, Any] | None, source: str = "") -> ToolCatalog:
        """Create ToolCatalog from dictionary."""
        if data is None:
            return ToolCatalog(source=source)
        _expect(data, dict, "config")
        tools_data = data.get("tools") or {}
        _expect(tools_data, dict, "tools")
        return ToolCatalog(
            tool_list=_string_list(data.get("tool_list"), "tool_list"),
            tools={
                str(name): ToolSpec.from_dict(spec, f"tools.{name}")
                for name, spec in tools_data.items()
            },
            source=source,
        )

    def spec_for(self, tool_name: str, use_default: bool = False) -> ToolSpec | None:
        """
        Get installation metadata for a tool.

        Args:
            tool_name: Name of the tool
            use_default: Fall back to the ``default`` entry when the tool has none

        Returns:
            ToolSpec for the tool, or None if not configured
        """
        spec = self.tools.get(tool_name)
        if spec is None and use_default and DEFAULT_TOOL_KEY in self.tools:
            logger.debug("Applying default template to %s", tool_name)
            return self.tools[DEFAULT_TOOL_KEY].for_tool(tool_name)
        return spec

    def select(self, names: list[str] | tuple[str, ...]) -> ToolCatalog:
        """
        Restrict the catalog to the given tool names.

        Names already in ``tool_list`` keep their configured order; names not
        listed there are appended in the order given.
        """
        wanted = set(names)
        ordered = [name for name in self.tool_list if name in wanted]
        ordered += [name for name in dict.fromkeys(names) if name not in self.tool_list]
        return ToolCatalog(tool_list=tuple(ordered), tools=self.tools, source=self.source)


def load_catalog(file_path: str = DEFAULT_CONFIG_PATH) -> ToolCatalog:
    """
    Load the tool catalog from a YAML file.

    Args:
        file_path: Path to the YAML configuration

    Returns:
        Parsed ToolCatalog

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    logger.debug("Loading config from: %s", file_path)
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.load(f, Loader=CatalogLoader)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(
            f"failed to read config file: {e}",
            remediation="pass the catalog path with --config",
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file: {e}") from e

    try:
        catalog = ToolCatalog.from_dict(data, source=file_path)
    except ConfigError as e:
        raise ConfigError(f"failed to parse config file: {e.message}") from e

    logger.debug(
        "Loaded config successfully: %s (%d listed, %d defined)",
        file_path, len(catalog.tool_list), len(catalog.tools),
    )
    return catalog
