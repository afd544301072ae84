from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StromCollectError(Exception):
    """Base error raised inside stromcollect components.

    Parameters
    ----------
    code:
        Short machine readable error code.
    message:
        Human readable error message.
    """

    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.message}"


class StorageError(StromCollectError):
    """Backing store could not be read or written."""


class ExportInProgressError(StromCollectError):
    """An export for the same collection is already running."""


__all__ = ["StromCollectError", "StorageError", "ExportInProgressError"]
