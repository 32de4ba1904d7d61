"""Per-clamp sensing, motor drive and status tracking."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from functools import partial
from typing import Dict, Optional

from .common import (
    ASSERTED,
    DockStatus,
    Endpoint,
    LockStatus,
    MotorStatus,
    PeripheralData,
    PeripheralState,
    SystemData,
)
from .pins import PinAssignment, PinBus, default_assignments
from .statemachine import Clock, Reporter, StateHandlers, StateMachine

DRIVE_DEADTIME_S = 0.001
START_UP_TIMEOUT_MS = 1000

_STATE_NAMES = {
    PeripheralState.INVALID: "PERIPHERAL_INVALID",
    PeripheralState.START_UP: "PERIPHERAL_START_UP",
    PeripheralState.UNKNOWN: "PERIPHERAL_UNKNOWN",
    PeripheralState.UNLOCKED: "PERIPHERAL_UNLOCKED",
    PeripheralState.LOCKED: "PERIPHERAL_LOCKED",
}


@dataclass
class _Clamp:
    endpoint: Endpoint
    pins: PinAssignment
    data: PeripheralData = field(default_factory=PeripheralData)
    dock_pin_value: bool = False
    lock_pin_value: bool = False
    machine: Optional[StateMachine] = None


class PeripheralController:
    """Reads the dock and lock sensors of every clamp and drives its motor."""

    def __init__(
        self,
        bus: PinBus,
        system_data: SystemData,
        clock: Optional[Clock] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self.bus = bus
        self.system_data = system_data
        assignments = default_assignments()
        self._clamps: Dict[Endpoint, _Clamp] = {}
        for endpoint, pins in assignments.items():
            clamp = _Clamp(endpoint, pins)
            clamp.machine = StateMachine(
                self._handlers(clamp),
                endpoint.name,
                PeripheralState.INVALID,
                PeripheralState.START_UP,
                PeripheralState.UNKNOWN,
                clock,
                reporter,
            )
            self._clamps[endpoint] = clamp

        system_data.aggregate = PeripheralData(
            DockStatus.UNKNOWN, LockStatus.UNKNOWN, MotorStatus.STOPPED
        )

        inputs = [pin for pins in assignments.values() for pin in pins.inputs]
        outputs = [pin for pins in assignments.values() for pin in pins.outputs]
        bus.configure(inputs, output=False, pull_up=True)
        bus.configure(outputs, output=True, pull_up=False)

    def _handlers(self, clamp: _Clamp) -> Dict[int, StateHandlers]:
        def bound(method):
            return partial(method, clamp)

        return {
            PeripheralState.INVALID: StateHandlers(_STATE_NAMES[PeripheralState.INVALID]),
            PeripheralState.START_UP: StateHandlers(
                _STATE_NAMES[PeripheralState.START_UP],
                on_execute=bound(self._start_up_execute),
            ),
            PeripheralState.UNKNOWN: StateHandlers(
                _STATE_NAMES[PeripheralState.UNKNOWN],
                on_entry=bound(self._unknown_entry),
                on_execute=bound(self._unknown_execute),
            ),
            PeripheralState.UNLOCKED: StateHandlers(
                _STATE_NAMES[PeripheralState.UNLOCKED],
                on_entry=bound(self._unlocked_entry),
                on_execute=bound(self._settled_execute),
            ),
            PeripheralState.LOCKED: StateHandlers(
                _STATE_NAMES[PeripheralState.LOCKED],
                on_entry=bound(self._locked_entry),
                on_execute=bound(self._settled_execute),
            ),
        }

    def _clamp(self, endpoint: int) -> _Clamp:
        return self._clamps[Endpoint(endpoint)]

    # State hooks -------------------------------------------------------

    def _start_up_execute(self, clamp: _Clamp, machine: StateMachine) -> int:
        if clamp.data.motor_status != MotorStatus.UNLOCKING:
            return PeripheralState.START_UP
        if clamp.dock_pin_value != ASSERTED:
            return PeripheralState.UNKNOWN
        if machine.elapsed > START_UP_TIMEOUT_MS:
            first_dock_pin = self._clamps[Endpoint.BOTTOM_LEFT].pins.dock
            self.system_data.docking_requested = self.bus.read(first_dock_pin) == ASSERTED
            return PeripheralState.UNLOCKED
        return PeripheralState.START_UP

    def _unknown_entry(self, clamp: _Clamp, machine: StateMachine) -> None:
        clamp.data.lock_status = LockStatus.UNKNOWN

    def _unknown_execute(self, clamp: _Clamp, machine: StateMachine) -> int:
        if clamp.lock_pin_value == ASSERTED:
            if clamp.data.motor_status == MotorStatus.LOCKING:
                return PeripheralState.LOCKED
            if clamp.data.motor_status == MotorStatus.UNLOCKING:
                return PeripheralState.UNLOCKED
        return PeripheralState.UNKNOWN

    def _unlocked_entry(self, clamp: _Clamp, machine: StateMachine) -> None:
        clamp.data.motor_status = MotorStatus.UNLOCKED
        clamp.data.lock_status = LockStatus.UNLOCKED

    def _locked_entry(self, clamp: _Clamp, machine: StateMachine) -> None:
        clamp.data.motor_status = MotorStatus.LOCKED
        clamp.data.lock_status = LockStatus.LOCKED

    def _settled_execute(self, clamp: _Clamp, machine: StateMachine) -> int:
        if clamp.lock_pin_value != ASSERTED and clamp.data.motor_status != MotorStatus.STOPPED:
            return PeripheralState.UNKNOWN
        return machine.current_state

    # Motor drive -------------------------------------------------------

    def lock_clamp(self, endpoint: int) -> None:
        """Drive the clamp motor in the locking direction."""
        clamp = self._clamp(endpoint)
        clamp.data.motor_status = MotorStatus.LOCKING
        self.bus.write(clamp.pins.motor_unlock, False)
        time.sleep(DRIVE_DEADTIME_S)
        self.bus.write(clamp.pins.motor_lock, True)

    def unlock_clamp(self, endpoint: int) -> None:
        """Drive the clamp motor in the unlocking direction."""
        clamp = self._clamp(endpoint)
        clamp.data.motor_status = MotorStatus.UNLOCKING
        self.bus.write(clamp.pins.motor_lock, False)
        time.sleep(DRIVE_DEADTIME_S)
        self.bus.write(clamp.pins.motor_unlock, True)

    def stop_clamp(self, endpoint: int) -> None:
        """Release both motor drive lines."""
        clamp = self._clamp(endpoint)
        clamp.data.motor_status = MotorStatus.STOPPED
        self.bus.write(clamp.pins.motor_lock, False)
        self.bus.write(clamp.pins.motor_unlock, False)

    # Status ------------------------------------------------------------

    def dock_status(self, endpoint: int) -> DockStatus:
        return self._clamp(endpoint).data.dock_status

    def lock_status(self, endpoint: int) -> LockStatus:
        return self._clamp(endpoint).data.lock_status

    def motor_status(self, endpoint: int) -> MotorStatus:
        return self._clamp(endpoint).data.motor_status

    def state(self, endpoint: int) -> PeripheralState:
        return PeripheralState(self._clamp(endpoint).machine.current_state)

    def update(self, endpoint: int) -> None:
        """Sample the dock and lock sensors of one clamp."""
        clamp = self._clamp(endpoint)
        clamp.dock_pin_value = self.bus.read(clamp.pins.dock) == ASSERTED
        clamp.data.dock_status = (
            DockStatus.DOCKED if clamp.dock_pin_value == ASSERTED else DockStatus.UNDOCKED
        )
        clamp.lock_pin_value = self.bus.read(clamp.pins.lock) == ASSERTED

    def aggregate(self) -> PeripheralData:
        """Combine all clamps' status into the shared system data and return it."""
        dock = next(
            (
                clamp.data.dock_status
                for clamp in self._clamps.values()
                if clamp.data.dock_status in (DockStatus.UNKNOWN, DockStatus.UNDOCKED)
            ),
            DockStatus.DOCKED,
        )
        lock = next(
            (
                clamp.data.lock_status
                for clamp in self._clamps.values()
                if clamp.data.lock_status in (LockStatus.UNKNOWN, LockStatus.UNLOCKED)
            ),
            LockStatus.LOCKED,
        )
        self.system_data.aggregate.dock_status = dock
        self.system_data.aggregate.lock_status = lock
        return self.system_data.aggregate

    def tick(self) -> None:
        """Sample every clamp, step its state machine, then aggregate."""
        for endpoint, clamp in self._clamps.items():
            self.update(endpoint)
            clamp.machine.step()
        self.aggregate()