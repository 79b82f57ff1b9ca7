from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    """Typed failure kinds attached to every fallible operation."""

    UNKNOWN_ACTION = "unknown_action"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    NO_DEVICE = "no_device"
    DEVICE_OFFLINE = "device_offline"
    UNAUTHORIZED = "unauthorized"
    NETWORK_UNAVAILABLE = "network_unavailable"
    BOOTLOADER_LOCKED = "bootloader_locked"
    UNLOCK_DISABLED = "unlock_disabled"
    LOW_BATTERY = "low_battery"
    KILLED = "killed"
    GENERIC = "generic"

    @property
    def connectivity_lost(self) -> bool:
        return self in _CONNECTIVITY_LOST


_CONNECTIVITY_LOST = frozenset(
    {
        FailureKind.NO_DEVICE,
        FailureKind.DEVICE_OFFLINE,
        FailureKind.UNAUTHORIZED,
        FailureKind.NETWORK_UNAVAILABLE,
    }
)


class InstallerError(Exception):
    kind: FailureKind = FailureKind.GENERIC

    def __init__(self, message: str, *, kind: Optional[FailureKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class UnknownActionError(InstallerError):
    kind = FailureKind.UNKNOWN_ACTION

    def __init__(self, action_id: str):
        super().__init__(f"Unknown action {action_id}")
        self.action_id = action_id


class ChecksumMismatchError(InstallerError):
    kind = FailureKind.CHECKSUM_MISMATCH

    def __init__(self, message: str = "checksum mismatch"):
        super().__init__(message)


class KilledError(InstallerError):
    """Deliberate cancellation. Never recovered."""

    kind = FailureKind.KILLED

    def __init__(self, message: str = "killed"):
        super().__init__(message)


class RunAborted(Exception):
    """The user declined to continue; terminates the run like KilledError."""


class ConfigError(ValueError):
    pass


class ActionFailure(Exception):
    """A handler failure, tagged with the action that raised it."""

    def __init__(self, action_id: str, error: BaseException):
        super().__init__(f"{action_id}: {error}")
        self.action_id = action_id
        self.error = error

    @property
    def kind(self) -> FailureKind:
        return classify(self.error)


def classify(error: BaseException) -> FailureKind:
    if isinstance(error, InstallerError):
        return error.kind
    return FailureKind.GENERIC
