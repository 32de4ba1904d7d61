# dockclamp

A controller for a docking frame with ten clamp endpoints. Each endpoint has a
dock sensor, a lock sensor, and a motor with a lock line and an unlock line.
Two sets of state machines run for every endpoint. Both are built on
`dockclamp.statemachine.StateMachine`, which has entry, execute and exit hooks
for each state:

- **Peripheral machines** (`dockclamp.peripheral.PeripheralController`) sample
  the sensors and track the dock, lock and motor status of each clamp. They
  also combine all clamps into an aggregate dock/lock status, which is stored
  in the shared `dockclamp.common.SystemData`.
- **Controller machines** (`dockclamp.controller.Controller`) decide for each
  endpoint when to lock, unlock or stop the clamp. The decision depends on
  whether docking has been requested and on the dock and lock status.

Each state change produces a `dockclamp.common.StateReport`. The report goes to
the reporter callable the machine was given, and is printed if none was given.

## Endpoints

`BOTTOM_LEFT`, `BOTTOM_RIGHT`, `MIDDLE_LEFT`, `MIDDLE_RIGHT`, `MIDDLE_CENTER`,
`UPPER_LEFT`, `UPPER_RIGHT`, `TOP_LEFT`, `TOP_RIGHT`, `TOP_CENTER`. They are
available as `dockclamp.common.Endpoint`. `dockclamp.common.endpoint_name()`
returns an endpoint's name.

## Packets

`dockclamp.communication.NetworkPacket` is a packed little-endian header
(`PacketHeader`) followed by its payload. The header holds the message id, a
sequence number, the CRC-16 of the payload (`crc16_le`) and the payload length.

`dockclamp.communication.Network` handles the link:

- `send()` frames a payload or a `StateReport` and queues it. The queue holds
  at most six packets.
- `transmit_pending()` broadcasts every queued packet through a `Transport`.
- `on_receive()` accepts raw bytes from the link and drops packets with a bad
  CRC.
- `process_received()` handles the packets that were accepted. A
  `DOCK_COMMAND` packet sets or clears `SystemData.docking_requested`.

## Installing

```
pip install .
```

## Running

```
dockclamp [--ticks N] [--interval SECONDS] [--undocked]
```

The command runs the whole system, `dockclamp.app.LockSystem`, against
simulated pins (`dockclamp.pins.SimulatedPins`):

- `--ticks` sets how many cycles to run. The default is 50.
- `--interval` sets the pause between cycles. The default is 0.1 seconds.
- `--undocked` holds the dock sensors low. Without it, the pulled-up inputs
  read high, which means docked.

State changes are printed while it runs. At the end the command prints the
controller state and the peripheral state of every endpoint.

## Using it from code

```python
from dockclamp.app import LockSystem
from dockclamp.pins import SimulatedPins

pins = SimulatedPins()
system = LockSystem(pins)
for _ in range(50):
    system.tick()
print(system.controller.state(0), system.peripherals.state(0))
```

Each `LockSystem.tick()` runs four steps in order. It handles received packets,
samples the sensors and steps the peripheral machines, steps the controller
machines, and then transmits queued packets.

`dockclamp.pins.default_assignments()` gives each endpoint's pins as a
`PinAssignment`. In the default assignment, all endpoints share the same four
pin numbers.

## What it does not do

- The package has no hardware pin driver. To drive a real board, subclass
  `dockclamp.pins.PinBus`.
- The package has no radio link. `LockSystem` uses a transport that discards
  every packet unless you pass it a `dockclamp.communication.Transport` of your
  own.
- Incoming data reaches the system only when your code calls
  `Network.on_receive()`.
- State reports are printed and are not broadcast as packets.