"""Shared enumerations and data records for the clamp lock system."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

MAX_PACKET_LENGTH = 256

ASSERTED = True
DEASSERTED = False


class SystemState(IntEnum):
    """States of the per-endpoint system controller."""

    INVALID = 0
    START_UP = 1
    WAIT_FOR_DOCK = 2
    LOCKING = 3
    UNLOCKING = 4
    LOCKED = 5
    FAULTED = 6


class PeripheralState(IntEnum):
    """States of the per-endpoint peripheral monitor."""

    INVALID = 0
    START_UP = 1
    UNKNOWN = 2
    UNLOCKED = 3
    LOCKED = 4


class DockStatus(IntEnum):
    UNKNOWN = 0
    UNDOCKED = 1
    DOCKED = 2


class LockStatus(IntEnum):
    UNKNOWN = 0
    UNLOCKED = 1
    LOCKED = 2


class MotorStatus(IntEnum):
    LOCKING = 0
    UNLOCKING = 1
    LOCKED = 2
    UNLOCKED = 3
    STOPPED = 4


class MessageId(IntEnum):
    """Identifiers carried in the header of every network packet."""

    HELLO = 0
    SYSTEM_REPORT = 10
    STATE_REPORT = 11
    ERROR_REPORT = 12
    DOCK_COMMAND = 20


class Endpoint(IntEnum):
    """Physical clamp positions, in their fixed order."""

    BOTTOM_LEFT = 0
    BOTTOM_RIGHT = 1
    MIDDLE_LEFT = 2
    MIDDLE_RIGHT = 3
    MIDDLE_CENTER = 4
    UPPER_LEFT = 5
    UPPER_RIGHT = 6
    TOP_LEFT = 7
    TOP_RIGHT = 8
    TOP_CENTER = 9


ENDPOINT_COUNT = len(Endpoint)
ENDPOINT_NAMES = tuple(endpoint.name for endpoint in Endpoint)


def endpoint_name(endpoint: int) -> str:
    """Return the display name of an endpoint; raise ValueError if unknown."""
    return Endpoint(endpoint).name


@dataclass
class PeripheralData:
    """Status of one clamp, or the aggregate over all clamps."""

    dock_status: DockStatus = DockStatus.UNKNOWN
    lock_status: LockStatus = LockStatus.UNKNOWN
    motor_status: MotorStatus = MotorStatus.STOPPED


@dataclass
class SystemData:
    """State shared between the network, peripheral and controller layers."""

    docking_requested: bool = False
    aggregate: PeripheralData = field(default_factory=PeripheralData)


@dataclass(frozen=True)
class StateReport:
    """Announcement that an endpoint's state machine entered a new state."""

    endpoint_name: str
    state_name: str

    def __str__(self) -> str:
        return f"Endpoint: {self.endpoint_name},\tState: {self.state_name}"