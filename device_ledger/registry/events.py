"""
Registry Events - Externally observable notifications.

StateChange is the only way observers learn a device's state changed.
It is emitted exactly once per successful state change, in call order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Union

from .states import PrincipalId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateChange:
    """A device's state was written by its owner."""
    device: PrincipalId
    new_state: bool

    kind = "state_change"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "device": self.device, "new_state": self.new_state}


@dataclass(frozen=True)
class DeviceRegistered:
    """A device registered itself. Only emitted when enabled in config."""
    device: PrincipalId
    owner: PrincipalId
    ordinal: int

    kind = "device_registered"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "device": self.device,
            "owner": self.owner,
            "ordinal": self.ordinal,
        }


RegistryEvent = Union[StateChange, DeviceRegistered]
EventListener = Callable[[RegistryEvent], None]


class EventLog:
    """
    Append-only log of emitted events.

    Listeners are called synchronously after the event is appended.
    A failing listener is logged; it never undoes the event.
    """

    def __init__(self) -> None:
        self._events: list[RegistryEvent] = []
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: RegistryEvent) -> None:
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Registry event listener error: {e}")

    def query(
        self,
        device: PrincipalId | None = None,
        kind: str | None = None,
    ) -> list[RegistryEvent]:
        """Query events by device and/or kind."""
        results = self._events
        if device is not None:
            results = [e for e in results if e.device == device]
        if kind is not None:
            results = [e for e in results if e.kind == kind]
        return list(results)

    def all(self) -> list[RegistryEvent]:
        return list(self._events)

    def count(self) -> int:
        return len(self._events)
