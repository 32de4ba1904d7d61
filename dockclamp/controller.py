"""Per-clamp docking controller that sequences locking and unlocking."""

from __future__ import annotations

from functools import partial
from typing import Dict, Optional

from .common import DockStatus, Endpoint, LockStatus, SystemData, SystemState
from .peripheral import PeripheralController
from .statemachine import Clock, Reporter, StateHandlers, StateMachine

_STATE_NAMES = {
    SystemState.INVALID: "SYSTEM_INVALID",
    SystemState.START_UP: "SYSTEM_START_UP",
    SystemState.WAIT_FOR_DOCK: "SYSTEM_WAIT_FOR_DOCK",
    SystemState.LOCKING: "SYSTEM_LOCKING",
    SystemState.UNLOCKING: "SYSTEM_UNLOCKING",
    SystemState.LOCKED: "SYSTEM_LOCKED",
    SystemState.FAULTED: "SYSTEM_FAULTED",
}


class Controller:
    """Runs one docking state machine for every clamp endpoint."""

    def __init__(
        self,
        peripherals: PeripheralController,
        system_data: SystemData,
        clock: Optional[Clock] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self.peripherals = peripherals
        self.system_data = system_data
        self._machines: Dict[Endpoint, StateMachine] = {
            endpoint: StateMachine(
                self._handlers(endpoint),
                endpoint.name,
                SystemState.INVALID,
                SystemState.START_UP,
                SystemState.FAULTED,
                clock,
                reporter,
            )
            for endpoint in Endpoint
        }

    def _handlers(self, endpoint: Endpoint) -> Dict[int, StateHandlers]:
        def bound(method):
            return partial(method, endpoint)

        return {
            SystemState.INVALID: StateHandlers(_STATE_NAMES[SystemState.INVALID]),
            SystemState.START_UP: StateHandlers(
                _STATE_NAMES[SystemState.START_UP],
                on_entry=bound(self._unlock_entry),
                on_execute=bound(self._start_up_execute),
            ),
            SystemState.WAIT_FOR_DOCK: StateHandlers(
                _STATE_NAMES[SystemState.WAIT_FOR_DOCK],
                on_entry=bound(self._stop_entry),
                on_execute=bound(self._wait_for_dock_execute),
            ),
            SystemState.LOCKING: StateHandlers(
                _STATE_NAMES[SystemState.LOCKING],
                on_entry=bound(self._lock_entry),
                on_execute=bound(self._locking_execute),
            ),
            SystemState.UNLOCKING: StateHandlers(
                _STATE_NAMES[SystemState.UNLOCKING],
                on_entry=bound(self._unlock_entry),
                on_execute=bound(self._unlocking_execute),
            ),
            SystemState.LOCKED: StateHandlers(
                _STATE_NAMES[SystemState.LOCKED],
                on_entry=bound(self._stop_entry),
                on_execute=bound(self._locked_execute),
            ),
            SystemState.FAULTED: StateHandlers(
                _STATE_NAMES[SystemState.FAULTED],
                on_entry=bound(self._unlock_entry),
                on_execute=bound(self._faulted_execute),
            ),
        }

    # Entry hooks -------------------------------------------------------

    def _unlock_entry(self, endpoint: Endpoint, machine: StateMachine) -> None:
        self.peripherals.unlock_clamp(endpoint)

    def _lock_entry(self, endpoint: Endpoint, machine: StateMachine) -> None:
        self.peripherals.lock_clamp(endpoint)

    def _stop_entry(self, endpoint: Endpoint, machine: StateMachine) -> None:
        self.peripherals.stop_clamp(endpoint)

    # Execute hooks -----------------------------------------------------

    def _start_up_execute(self, endpoint: Endpoint, machine: StateMachine) -> int:
        return SystemState.UNLOCKING

    def _wait_for_dock_execute(self, endpoint: Endpoint, machine: StateMachine) -> int:
        if (
            self.system_data.docking_requested
            and self.system_data.aggregate.dock_status == DockStatus.DOCKED
        ):
            return SystemState.LOCKING
        return SystemState.WAIT_FOR_DOCK

    def _locking_execute(self, endpoint: Endpoint, machine: StateMachine) -> int:
        if not self.system_data.docking_requested:
            # Request withdrawn: release the clamp so the dock can leave.
            return SystemState.UNLOCKING
        if self.peripherals.dock_status(endpoint) != DockStatus.DOCKED:
            # Undocked while locking: open the clamp and try again.
            return SystemState.UNLOCKING
        if self.peripherals.lock_status(endpoint) == LockStatus.LOCKED:
            return SystemState.LOCKED
        return SystemState.LOCKING

    def _unlocking_execute(self, endpoint: Endpoint, machine: StateMachine) -> int:
        if self.peripherals.lock_status(endpoint) == LockStatus.UNLOCKED:
            return SystemState.WAIT_FOR_DOCK
        return SystemState.UNLOCKING

    def _locked_execute(self, endpoint: Endpoint, machine: StateMachine) -> int:
        if not self.system_data.docking_requested:
            return SystemState.UNLOCKING
        return SystemState.LOCKED

    def _faulted_execute(self, endpoint: Endpoint, machine: StateMachine) -> int:
        return SystemState.UNLOCKING

    # Public interface --------------------------------------------------

    def state(self, endpoint: int) -> SystemState:
        """Return the current controller state of one endpoint."""
        return SystemState(self._machines[Endpoint(endpoint)].current_state)

    def tick(self) -> None:
        """Step every endpoint's state machine once, in endpoint order."""
        for machine in self._machines.values():
            machine.step()