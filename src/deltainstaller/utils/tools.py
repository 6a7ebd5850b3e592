"""Resolution of the on-device tool binaries the installer drives."""

from __future__ import annotations

import os
from typing import Final

from deltainstaller.utils.config import get_config_value

# Platform locations of the package manager front-ends
DEFAULT_TOOL_PATHS: dict[str, str] = {
    "cmd": "/system/bin/cmd",
    "pm": "/system/bin/pm",
}

TOOL_ENV_VARS: dict[str, str] = {
    "cmd": "DELTAINSTALLER_CMD",
    "pm": "DELTAINSTALLER_PM",
}

SHELL_CONFIG_KEY: Final[str] = "shell"
SHELL_ARG_CONFIG_KEY: Final[str] = "shell_arg"


def resolve_tool(tool: str, override: str | None = None) -> str:
    """Resolve the path of a tool binary.

    Precedence: explicit override, environment variable, config file
    (``<tool>_path``), platform default.

    Args:
        tool: Tool name ("cmd" or "pm").
        override: Path given on the command line, if any.

    Returns:
        Path to the tool executable.

    Raises:
        KeyError: If the tool is unknown.
    """
    default = DEFAULT_TOOL_PATHS[tool]

    if override:
        return override

    env_value = os.environ.get(TOOL_ENV_VARS[tool])
    if env_value:
        return env_value

    cfg_value = get_config_value(f"{tool}_path")
    if isinstance(cfg_value, str) and cfg_value:
        return cfg_value

    return default


def resolve_shell(
    shell: str | None = None, shell_arg: str | None = None
) -> tuple[str, str] | None:
    """Resolve the redirecting shell and its leading argument.

    Command-line values win over the config file. Redirection only applies
    when both the shell and its argument are known.
    """

    if shell is None and shell_arg is None:
        cfg_shell = get_config_value(SHELL_CONFIG_KEY)
        cfg_arg = get_config_value(SHELL_ARG_CONFIG_KEY)
        shell = cfg_shell if isinstance(cfg_shell, str) else None
        shell_arg = cfg_arg if isinstance(cfg_arg, str) else None

    if shell and shell_arg is not None:
        return shell, shell_arg

    return None
