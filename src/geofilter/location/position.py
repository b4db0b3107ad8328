"""
Device-position collaborators.

The detector only needs two calls: ask for permission, then read one position.
`StaticPositionProvider` covers environments without a GPS (CLI, server, tests)
by answering with a fixed position or a fixed permission refusal.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from geofilter.domain.models import Coordinates


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


class Accuracy(str, Enum):
    LOWEST = "lowest"
    LOW = "low"
    BALANCED = "balanced"
    HIGH = "high"
    BEST = "best"


class PositionUnavailableError(RuntimeError):
    """Raised when the provider cannot produce a position."""


class PositionProvider(Protocol):
    async def request_permission(self) -> PermissionStatus: ...

    async def get_current_position(self, accuracy: Accuracy) -> Coordinates: ...


class StaticPositionProvider:
    """A provider that always reports the same position (or none)."""

    def __init__(
        self,
        coordinates: Coordinates | None,
        *,
        permission: PermissionStatus = PermissionStatus.GRANTED,
    ):
        self._coordinates = coordinates
        self._permission = permission

    async def request_permission(self) -> PermissionStatus:
        return self._permission

    async def get_current_position(self, accuracy: Accuracy) -> Coordinates:
        if self._permission is not PermissionStatus.GRANTED:
            raise PermissionError("location permission not granted")
        if self._coordinates is None:
            raise PositionUnavailableError("no position configured")
        return self._coordinates
