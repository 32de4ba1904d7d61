"""A table-driven state machine with entry, execute and exit hooks."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from .common import StateReport

log = logging.getLogger(__name__)

Clock = Callable[[], int]
Reporter = Callable[[StateReport], None]


def _monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


def _print_report(report: StateReport) -> None:
    print(report)


@dataclass(frozen=True)
class StateHandlers:
    """Name and optional hooks of one state; hooks receive the machine."""

    name: str
    on_entry: Optional[Callable[["StateMachine"], None]] = None
    on_exit: Optional[Callable[["StateMachine"], None]] = None
    on_execute: Optional[Callable[["StateMachine"], int]] = None


class StateMachine:
    """Runs one step at a time over a table of states.

    A step either performs a pending transition (report, exit hook, entry
    hook) or, when none is pending, updates the elapsed time and runs the
    current state's execute hook to choose the next state.
    """

    def __init__(
        self,
        handlers: Mapping[int, StateHandlers],
        name: str,
        initial_state: int,
        start_state: int,
        fault_state: int,
        clock: Optional[Clock] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self.handlers = dict(handlers)
        for label, state in (("initial", initial_state), ("fault", fault_state)):
            if state not in self.handlers:
                raise ValueError(f"{label} state {state!r} has no handlers")
        self.name = name
        self.current_state = initial_state
        self.next_state = start_state
        self.fault_state = fault_state
        self.start_time = 0
        self.elapsed = 0
        self._clock = clock or _monotonic_ms
        self._reporter = reporter or _print_report

    @property
    def state_name(self) -> str:
        return self.handlers[self.current_state].name

    def step(self) -> int:
        """Advance the machine once and return the current state."""
        target = self.next_state
        if target != self.current_state:
            if target not in self.handlers:
                log.warning("%s: invalid state %r, faulting", self.name, target)
                target = self.fault_state
                self.next_state = target
            self._reporter(StateReport(self.name, self.handlers[target].name))

            leaving = self.handlers[self.current_state]
            if leaving.on_exit is not None:
                leaving.on_exit(self)

            self.start_time = self._clock()
            self.elapsed = 0
            self.current_state = target

            entering = self.handlers[target]
            if entering.on_entry is not None:
                entering.on_entry(self)
        else:
            self.elapsed = self._clock() - self.start_time
            current = self.handlers[self.current_state]
            if current.on_execute is not None:
                self.next_state = current.on_execute(self)
        return self.current_state