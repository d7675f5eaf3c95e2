"""The error type raised by every installer operation."""

from __future__ import annotations


class InstallerError(Exception):
    """Raised when an installation step or a metadata request fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message