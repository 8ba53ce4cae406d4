"""Exception hierarchy shared by the registry, store, and matching engine."""
from __future__ import annotations

from typing import Optional


class InvalidCoordinates(ValueError):
    """Raised when a latitude/longitude pair is NaN or out of range."""


class InvalidLocation(ValueError):
    """Raised when a professional's ZIP code cannot be resolved at registration."""

    def __init__(self, zip_code: Optional[str], reason: str = "ZIP code could not be resolved") -> None:
        self.zip_code = zip_code
        self.reason = reason
        super().__init__(f"Invalid location '{zip_code}': {reason}")


class BackendUnavailable(RuntimeError):
    """Base class for transient infrastructure failures."""

    component = "backend"

    def __init__(self, message: str, *, component: Optional[str] = None) -> None:
        if component is not None:
            self.component = component
        super().__init__(message)


class RegistryUnavailable(BackendUnavailable):
    """The professional registry could not be queried."""

    component = "registry"


class StoreUnavailable(BackendUnavailable):
    """The lead/match store could not be written or read."""

    component = "store"


class MatchingTimeout(BackendUnavailable):
    """A registry or store call exceeded its time budget."""

    component = "pipeline"


__all__ = [
    "BackendUnavailable",
    "InvalidCoordinates",
    "InvalidLocation",
    "MatchingTimeout",
    "RegistryUnavailable",
    "StoreUnavailable",
]
