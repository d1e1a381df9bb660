"""
Registry Errors — Domain-specific error types.

Error hierarchy:
    RegistryError (base)
    ├── DeviceExistsError
    ├── DeviceDoesNotExistError
    ├── NotOwnerError
    ├── InvalidArgumentError
    └── InvariantViolationError

The first four are validation failures: the call is rejected and
nothing is written. None of them is retryable.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Stable codes carried by rejected call results."""
    DEVICE_EXISTS = "device_exists"
    DEVICE_DOES_NOT_EXIST = "device_does_not_exist"
    NOT_OWNER = "not_owner"
    INVALID_ARGUMENT = "invalid_argument"
    INVARIANT_VIOLATION = "invariant_violation"


class RegistryError(Exception):
    """Base error for all registry errors."""

    code: ErrorCode

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class DeviceExistsError(RegistryError):
    """Raised when registering an id that is already present."""

    code = ErrorCode.DEVICE_EXISTS

    def __init__(self, device_id: str, details: dict[str, Any] | None = None):
        super().__init__(f"Device already registered: {device_id}", details)
        self.device_id = device_id


class DeviceDoesNotExistError(RegistryError):
    """Raised when an operation names an id with no device record."""

    code = ErrorCode.DEVICE_DOES_NOT_EXIST

    def __init__(self, device_id: str, details: dict[str, Any] | None = None):
        super().__init__(f"No device registered under: {device_id}", details)
        self.device_id = device_id


class NotOwnerError(RegistryError):
    """
    Raised when a caller is not the device's owner.

    Covers unclaimed devices too: current_owner is None there and
    no caller can ever match it.
    """

    code = ErrorCode.NOT_OWNER

    def __init__(
        self,
        device_id: str,
        caller: str | None,
        current_owner: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"Caller {caller!r} does not own device {device_id}", details)
        self.device_id = device_id
        self.caller = caller
        self.current_owner = current_owner


class InvalidArgumentError(RegistryError):
    """Raised when an argument has the wrong type, e.g. a non-bool state."""

    code = ErrorCode.INVALID_ARGUMENT

    def __init__(
        self,
        argument: str,
        value: Any,
        expected: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"Argument {argument!r} must be {expected}, got {type(value).__name__} {value!r}",
            details,
        )
        self.argument = argument
        self.value = value


class InvariantViolationError(RegistryError):
    """
    Raised when a call's staged writes would break an ownership-index
    invariant. The batch is discarded, so nothing is written.

    Only raised with invariant verification enabled. This indicates
    a storage fault, not a caller mistake.
    """

    code = ErrorCode.INVARIANT_VIOLATION

    def __init__(
        self,
        invariant_id: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"[{invariant_id}] {message}", details)
        self.invariant_id = invariant_id
