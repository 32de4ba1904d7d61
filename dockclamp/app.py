"""Assembly of the network, peripheral and controller layers, and its command."""

from __future__ import annotations

import argparse
import time
from typing import Optional, Sequence

from .common import Endpoint, StateReport, SystemData
from .communication import Network, Output, Transport
from .controller import Controller
from .peripheral import PeripheralController
from .pins import PinBus, SimulatedPins, default_assignments
from .statemachine import Clock


class _DiscardTransport(Transport):
    """A link that accepts every packet and delivers it nowhere."""

    def send(self, destination: bytes, data: bytes) -> bool:
        return True


class LockSystem:
    """The whole clamp lock system: network link, clamp peripherals and controller."""

    def __init__(
        self,
        bus: PinBus,
        transport: Optional[Transport] = None,
        clock: Optional[Clock] = None,
        output: Optional[Output] = None,
    ) -> None:
        self.output = output or print
        self.system_data = SystemData()
        self.network = Network(transport or _DiscardTransport(), self.system_data, self.output)
        self.peripherals = PeripheralController(bus, self.system_data, clock, self._report)
        self.controller = Controller(self.peripherals, self.system_data, clock, self._report)

    def _report(self, report: StateReport) -> None:
        self.output(str(report))

    def tick(self) -> None:
        """Run one cycle: incoming packets, sensors, controller, outgoing packets."""
        self.network.process_received()
        self.peripherals.tick()
        self.controller.tick()
        self.network.transmit_pending()


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"{text} is negative")
    return value


def _non_negative_float(text: str) -> float:
    value = float(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"{text} is negative")
    return value


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the lock system against simulated pins and print the final states."""
    parser = argparse.ArgumentParser(
        prog="dockclamp", description="Run the clamp lock controller on simulated pins."
    )
    parser.add_argument("--ticks", type=_non_negative_int, default=50, help="cycles to run")
    parser.add_argument(
        "--interval", type=_non_negative_float, default=0.1, help="seconds between cycles"
    )
    parser.add_argument(
        "--undocked", action="store_true", help="hold the dock sensors de-asserted"
    )
    args = parser.parse_args(argv)

    bus = SimulatedPins()
    system = LockSystem(bus)
    if args.undocked:
        for pins in default_assignments().values():
            bus.set_input(pins.dock, False)

    for count in range(args.ticks):
        system.tick()
        if args.interval and count + 1 < args.ticks:
            time.sleep(args.interval)

    for endpoint in Endpoint:
        print(
            f"{endpoint.name}: {system.controller.state(endpoint).name} "
            f"{system.peripherals.state(endpoint).name}"
        )
    return 0