"""Packet framing and the broadcast network link between controllers."""

from __future__ import annotations

import logging
import struct
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, ClassVar, Deque, Optional, Union

from .common import MessageId, StateReport, SystemData

log = logging.getLogger(__name__)

ESPNOW_QUEUE_SIZE = 6
MAC_LENGTH = 6
BROADCAST_MAC = b"\xff" * MAC_LENGTH
MAX_PAYLOAD = 0xFF
MAX_MESSAGE_ID = 0xFF

_HEADER = struct.Struct("<IHHB")
_CRC_POLY_REFLECTED = 0x8408

Output = Callable[[str], None]


def crc16_le(data: bytes, crc: int = 0xFFFF) -> int:
    """Little-endian CRC-16 (reflected 0x1021) with the value inverted on entry and exit."""
    value = ~crc & 0xFFFF
    for byte in data:
        value ^= byte
        for _ in range(8):
            value = (value >> 1) ^ _CRC_POLY_REFLECTED if value & 1 else value >> 1
    return ~value & 0xFFFF


def _as_message_id(value: int) -> int:
    try:
        return MessageId(value)
    except ValueError:
        return value


def _encode_state_report(report: StateReport) -> bytes:
    return report.endpoint_name.encode("utf-8") + b"\0" + report.state_name.encode("utf-8")


def _decode_state_report(payload: bytes) -> StateReport:
    endpoint, _, state = payload.partition(b"\0")
    return StateReport(
        endpoint.decode("utf-8", errors="replace"),
        state.decode("utf-8", errors="replace"),
    )


def _flag(payload: bytes) -> bool:
    return bool(payload[0]) if payload else False


def _yes_no(flag: bool) -> str:
    return "TRUE" if flag else "FALSE"


@dataclass(frozen=True)
class PacketHeader:
    """Fixed header in front of every packet payload."""

    message_id: int
    seq_num: int
    crc: int
    length: int

    SIZE: ClassVar[int] = _HEADER.size

    def __post_init__(self) -> None:
        limits = (
            ("message id", self.message_id, MAX_MESSAGE_ID),
            ("sequence number", self.seq_num, 0xFFFF),
            ("crc", self.crc, 0xFFFF),
            ("length", self.length, MAX_PAYLOAD),
        )
        for label, value, upper in limits:
            if not 0 <= value <= upper:
                raise ValueError(f"{label} {value!r} out of range 0..{upper}")


@dataclass(frozen=True)
class NetworkPacket:
    """A header and the payload it describes."""

    header: PacketHeader
    payload: bytes = b""

    def __post_init__(self) -> None:
        if len(self.payload) != self.header.length:
            raise ValueError(
                f"payload holds {len(self.payload)} bytes, header says {self.header.length}"
            )

    def encode(self) -> bytes:
        """Return the wire form: packed header followed by the payload."""
        header = self.header
        return (
            _HEADER.pack(int(header.message_id), header.seq_num, header.crc, header.length)
            + self.payload
        )

    @classmethod
    def decode(cls, data: bytes) -> "NetworkPacket":
        """Parse a packet from its wire form; raise ValueError if it is truncated."""
        data = bytes(data)
        if len(data) < PacketHeader.SIZE:
            raise ValueError(f"packet of {len(data)} bytes is shorter than its header")
        message_id, seq_num, crc, length = _HEADER.unpack_from(data)
        payload = data[PacketHeader.SIZE : PacketHeader.SIZE + length]
        if len(payload) != length:
            raise ValueError(f"payload truncated: expected {length} bytes, got {len(payload)}")
        if message_id > MAX_MESSAGE_ID:
            raise ValueError(f"message id {message_id} out of range")
        header = PacketHeader(_as_message_id(message_id), seq_num, crc, length)
        return cls(header, payload)


class Transport(ABC):
    """The radio link that carries encoded packets."""

    @abstractmethod
    def send(self, destination: bytes, data: bytes) -> bool:
        """Hand data to the link for the given address; return False on failure."""


class Network:
    """Queues outgoing packets, checks incoming ones and acts on them."""

    def __init__(
        self,
        transport: Transport,
        system_data: SystemData,
        output: Optional[Output] = None,
    ) -> None:
        self.transport = transport
        self.system_data = system_data
        self._output = output or print
        self._send_queue: Deque[NetworkPacket] = deque()
        self._receive_queue: Deque[NetworkPacket] = deque()
        self._sequence = 0

    def send(self, message_id: int, payload: Union[bytes, StateReport] = b"") -> bool:
        """Frame a payload and queue it for broadcast; return False if the queue is full."""
        if isinstance(payload, StateReport):
            payload = _encode_state_report(payload)
        payload = bytes(payload)
        if len(payload) > MAX_PAYLOAD:
            raise ValueError(f"payload of {len(payload)} bytes exceeds {MAX_PAYLOAD}")
        header = PacketHeader(
            message_id=_as_message_id(int(message_id)),
            seq_num=self._sequence,
            crc=crc16_le(payload),
            length=len(payload),
        )
        self._sequence = (self._sequence + 1) & 0xFFFF
        if len(self._send_queue) >= ESPNOW_QUEUE_SIZE:
            log.warning("send queue full, dropping packet %d", header.seq_num)
            return False
        self._send_queue.append(NetworkPacket(header, payload))
        return True

    def on_send_complete(self, success: bool) -> None:
        """Called by the link when a transmission finishes."""
        if not success:
            self._output("Send FAILED")

    def on_receive(self, source: Optional[bytes], destination: Optional[bytes], data: bytes) -> bool:
        """Accept raw data from the link; queue it if its checksum holds."""
        if source is None or not data:
            return False
        # Broadcast and unicast packets are treated alike.
        try:
            packet = NetworkPacket.decode(data)
        except ValueError:
            self._output("Received BAD data")
            return False
        if crc16_le(packet.payload) != packet.header.crc:
            self._output("Received BAD data")
            return False
        if len(self._receive_queue) >= ESPNOW_QUEUE_SIZE:
            log.warning("receive queue full, dropping packet %d", packet.header.seq_num)
            return False
        self._receive_queue.append(replace(packet, header=replace(packet.header, crc=0)))
        return True

    def transmit_pending(self) -> int:
        """Broadcast every queued packet; return how many the link accepted."""
        sent = 0
        while self._send_queue:
            packet = self._send_queue.popleft()
            if self.transport.send(BROADCAST_MAC, packet.encode()):
                sent += 1
            else:
                self._output("Failed to send data")
        return sent

    def process_received(self) -> int:
        """Handle every queued incoming packet; return how many were handled."""
        handled = 0
        while self._receive_queue:
            self.handle_packet(self._receive_queue.popleft())
            handled += 1
        return handled

    def handle_packet(self, packet: NetworkPacket) -> None:
        """Act on one checked packet and report it to the output."""
        message_id = packet.header.message_id
        payload = packet.payload
        if message_id == MessageId.HELLO:
            self._output("Received: HELLO")
        elif message_id == MessageId.SYSTEM_REPORT:
            self._output(f"Received: bDockingRequested: {_yes_no(_flag(payload))}")
        elif message_id == MessageId.STATE_REPORT:
            report = _decode_state_report(payload)
            self._output(
                f"Received: Endpoint: {report.endpoint_name}, State: {report.state_name}"
            )
        elif message_id == MessageId.ERROR_REPORT:
            self._output("Received: ERROR_REPORT")
        elif message_id == MessageId.DOCK_COMMAND:
            self._output("Received: DOCK_COMMAND")
            requested = _flag(payload)
            self.system_data.docking_requested = requested
            self._output(f"bDockingRequested: {_yes_no(requested)}")
        else:
            self._output("Received: UNKNOWN")