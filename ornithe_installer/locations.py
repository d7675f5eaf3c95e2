"""Installation modes and the default locations offered for each of them."""

from __future__ import annotations

import enum
import os
import sys
from pathlib import Path


class Mode(enum.Enum):
    """What kind of installation is being made."""

    CLIENT = "client"
    SERVER = "server"
    MMC = "mmc"


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def _default_root() -> str:
    return "C:\\" if _is_windows() else "/"


def _home_dir() -> Path | None:
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return None
    if str(home).startswith("~"):
        return None
    return home


def _working_dir() -> Path | None:
    try:
        return Path.cwd()
    except OSError:
        return None


def _location(minecraft_path: Path | None, default: str) -> str:
    if minecraft_path is not None:
        return str(minecraft_path)
    return str(_working_dir() or Path(default))


def dot_minecraft_location() -> str:
    """The game directory used by the official launcher on this platform."""
    if _is_windows():
        appdata = os.environ.get("APPDATA")
        return _location(Path(appdata) / ".minecraft" if appdata is not None else None, "C:\\")
    home = _home_dir()
    if sys.platform == "darwin":
        return _location(
            home / "Library/Application Support/minecraft" if home is not None else None, "/"
        )
    return _location(home / ".minecraft" if home is not None else None, "/")


def current_location() -> str:
    """The working directory, falling back to the home directory."""
    return str(_working_dir() or _home_dir() or Path(_default_root()))


def server_location() -> str:
    """A ``server`` directory inside the working directory."""
    return str((_working_dir() or _home_dir() or Path(_default_root())) / "server")