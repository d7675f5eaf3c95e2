"""Shared HTTP session, downloads and the game side selector."""

from __future__ import annotations

import enum
import functools
from pathlib import Path

import requests

from .errors import InstallerError

VERSION = "0.1.4"
USER_AGENT = f"ornithe-installer/{VERSION}"
OSL_MODRINTH_URL = "https://modrinth.com/mod/osl"


class GameSide(enum.Enum):
    """Which half of the game an operation targets."""

    CLIENT = "client"
    SERVER = "server"

    def id(self) -> str:
        """The identifier used in version names and URLs."""
        return self.value


@functools.lru_cache(maxsize=None)
def get_session() -> requests.Session:
    """Return the shared HTTP session carrying the installer's user agent."""
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    return session


def download_file(url: str, output: str | Path) -> None:
    """Download ``url`` to ``output``, replacing any existing file."""
    output = Path(output)
    try:
        content = get_session().get(url).content
    except requests.RequestException as exc:
        raise InstallerError(repr(exc)) from exc
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.unlink(missing_ok=True)
        output.write_bytes(content)
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc