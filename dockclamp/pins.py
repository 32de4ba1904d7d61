"""Pin assignments and the digital I/O bus the clamps are wired to."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .common import Endpoint

MAX_PIN = 63

LOCK_SENSE_PIN = 9
DOCK_SENSE_PIN = 19
MOTOR_LOCK_PIN = 8
MOTOR_UNLOCK_PIN = 17


def _check_pin(pin: int) -> int:
    if not isinstance(pin, int) or isinstance(pin, bool) or not 0 <= pin <= MAX_PIN:
        raise ValueError(f"invalid pin number {pin!r}")
    return pin


class PinBus(ABC):
    """Digital pins that can be configured, read and driven."""

    @abstractmethod
    def read(self, pin: int) -> bool:
        """Return the current level of a pin."""

    @abstractmethod
    def write(self, pin: int, level: bool) -> None:
        """Drive an output pin to a level."""

    @abstractmethod
    def configure(self, pins: Iterable[int], output: bool, pull_up: bool) -> None:
        """Set the direction and pull-up of a group of pins."""


class SimulatedPins(PinBus):
    """An in-memory pin bus; inputs are set by hand with set_input."""

    def __init__(self) -> None:
        self._outputs: Dict[int, bool] = {}
        self._levels: Dict[int, bool] = {}
        self.writes: List[Tuple[int, bool]] = []

    def configure(self, pins: Iterable[int], output: bool, pull_up: bool) -> None:
        checked = {_check_pin(pin) for pin in pins}
        for pin in checked:
            self._outputs[pin] = bool(output)
            # Pulled-up inputs idle high; everything else starts low.
            self._levels[pin] = bool(pull_up) and not output

    def _configured(self, pin: int) -> int:
        _check_pin(pin)
        if pin not in self._outputs:
            raise ValueError(f"pin {pin} is not configured")
        return pin

    def is_output(self, pin: int) -> bool:
        """Return True if the pin was configured as an output."""
        return self._outputs[self._configured(pin)]

    def read(self, pin: int) -> bool:
        return self._levels[self._configured(pin)]

    def write(self, pin: int, level: bool) -> None:
        if not self.is_output(pin):
            raise ValueError(f"pin {pin} is an input and cannot be driven")
        self._levels[pin] = bool(level)
        self.writes.append((pin, bool(level)))

    def set_input(self, pin: int, level: bool) -> None:
        """Set the externally applied level of an input pin."""
        if self.is_output(pin):
            raise ValueError(f"pin {pin} is an output")
        self._levels[pin] = bool(level)


@dataclass(frozen=True)
class PinAssignment:
    """The four pins that serve one clamp."""

    lock: int
    dock: int
    motor_lock: int
    motor_unlock: int

    def __post_init__(self) -> None:
        for pin in (self.lock, self.dock, self.motor_lock, self.motor_unlock):
            _check_pin(pin)

    @property
    def inputs(self) -> Tuple[int, int]:
        return (self.lock, self.dock)

    @property
    def outputs(self) -> Tuple[int, int]:
        return (self.motor_lock, self.motor_unlock)


def default_assignments() -> Dict[Endpoint, PinAssignment]:
    """Return the board's pin assignment for every endpoint, in endpoint order."""
    return {
        endpoint: PinAssignment(
            lock=LOCK_SENSE_PIN,
            dock=DOCK_SENSE_PIN,
            motor_lock=MOTOR_LOCK_PIN,
            motor_unlock=MOTOR_UNLOCK_PIN,
        )
        for endpoint in Endpoint
    }