"""Exceptions raised by the maps client."""

from __future__ import annotations


class MapsError(Exception):
    """Base class for maps provider failures."""


class MapsConfigError(MapsError):
    """Maps credentials missing. Fatal to maps-backed features; never retried."""


class MapsTransportError(MapsError):
    """Network failure, HTTP error, non-OK provider status or malformed payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
