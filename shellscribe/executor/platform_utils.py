"""
Platform detection and utilities for ShellScribe.

This module detects the operating system and the active shell so prompts
can describe the environment the generated command has to run in.
"""

import os
import platform
import sys
from typing import Dict, Optional, Tuple

OS_DISPLAY_NAMES = {
    "darwin": "macOS",
    "windows": "Windows",
    "linux": "Linux",
}


def get_platform_info() -> Dict[str, str]:
    """
    Get detailed information about the current platform.

    Returns:
        Dict[str, str]: Dictionary containing platform information.
    """
    info = {
        "os_name": platform.system(),
        "os_release": platform.release(),
        "architecture": platform.machine(),
        "python_version": platform.python_version(),
    }

    shell_info = detect_shell()
    if shell_info:
        info["shell_name"] = shell_info[0]
        info["shell_version"] = shell_info[1]

    return info


def is_windows() -> bool:
    """
    Check if the current platform is Windows.

    Returns:
        bool: True if Windows, False otherwise.
    """
    return platform.system().lower() == "windows"


def is_macos() -> bool:
    """
    Check if the current platform is macOS.

    Returns:
        bool: True if macOS, False otherwise.
    """
    return platform.system().lower() == "darwin"


def is_linux() -> bool:
    """
    Check if the current platform is Linux.

    Returns:
        bool: True if Linux, False otherwise.
    """
    return platform.system().lower() == "linux"


def detect_shell() -> Optional[Tuple[str, str]]:
    """
    Detect the active shell from environment variables.

    Returns:
        Optional[Tuple[str, str]]: Tuple of (shell_name, shell_version) or None
        if detection fails.
    """
    if is_windows():
        if "MSYSTEM" in os.environ and "MINGW" in os.environ.get("MSYSTEM", ""):
            return "bash", ""

        if any(var.startswith("PS") for var in os.environ):
            if "PSCore" in os.environ.get("PSModulePath", "") or os.environ.get(
                "POWERSHELL_DISTRIBUTION_CHANNEL"
            ):
                return "pwsh", ""
            return "powershell", ""
    else:
        if "BASH_VERSION" in os.environ:
            return "bash", os.environ["BASH_VERSION"].split()[0]
        if "ZSH_VERSION" in os.environ:
            return "zsh", os.environ["ZSH_VERSION"]
        if "FISH_VERSION" in os.environ:
            return "fish", os.environ["FISH_VERSION"]

    shell_path = os.environ.get("SHELL") or os.environ.get("COMSPEC")
    if not shell_path and is_windows():
        shell_path = "cmd.exe"
    if not shell_path:
        return None

    # /usr/local/bin/zsh -> zsh, C:\Windows\System32\cmd.exe -> cmd
    shell_name = shell_path.replace("\\", "/").rsplit("/", 1)[-1].lower()
    return shell_name.split(".")[0], ""


def describe_shell() -> str:
    """
    Describe the active shell for use in a prompt.

    Returns:
        str: Shell name with its version when known, e.g. ``zsh 5.9``.
    """
    shell_info = detect_shell()
    if not shell_info:
        return "an unknown POSIX shell"
    name, version = shell_info
    return f"{name} {version}".strip()


def describe_os() -> str:
    """
    Describe the operating system for use in a prompt.

    Returns:
        str: Operating system display name with its release, e.g. ``macOS 14.4``.
    """
    system = platform.system()
    name = OS_DISPLAY_NAMES.get(system.lower(), system or "Unknown")
    release = platform.mac_ver()[0] if is_macos() else platform.release()
    return f"{name} {release}".strip()


def supports_ansi_colors() -> bool:  # pragma: no cover - terminal capability check
    """
    Check if the terminal supports ANSI colors.

    Returns:
        bool: True if ANSI colors are supported, False otherwise.
    """
    if is_windows():
        if os.environ.get("WT_SESSION") or os.environ.get("ANSICON"):
            return True
        if hasattr(sys, "getwindowsversion") and sys.getwindowsversion().major >= 10:
            return True

    term_env = os.environ.get("TERM")
    if term_env and term_env != "dumb":
        return True

    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
