"""
Registry configuration.

Defaults can be overridden from the environment:
    DEVICE_LEDGER_READ_POLICY        "public" (default) or "owner"
    DEVICE_LEDGER_VERIFY_INVARIANTS  "1", "true" or "yes" to enable
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

READ_POLICIES = ("public", "owner")

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class RegistryConfig:
    """Configuration for a DeviceRegistry."""

    # Who may read device state: anyone, or only the owner
    read_policy: Literal["public", "owner"] = field(
        default_factory=lambda: os.environ.get("DEVICE_LEDGER_READ_POLICY", "public")
    )

    # Emit DeviceRegistered on successful registration
    emit_registration_events: bool = False

    # Re-check ownership index invariants after every mutation
    verify_invariants: bool = field(
        default_factory=lambda: _env_flag("DEVICE_LEDGER_VERIFY_INVARIANTS")
    )

    # Record every submitted call in the audit log
    audit_enabled: bool = True

    def __post_init__(self) -> None:
        if self.read_policy not in READ_POLICIES:
            raise ValueError(
                f"read_policy must be one of {READ_POLICIES}, got {self.read_policy!r}"
            )
