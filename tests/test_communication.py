import pytest

from dockclamp.common import MessageId, StateReport, SystemData
from dockclamp.communication import (
    BROADCAST_MAC,
    ESPNOW_QUEUE_SIZE,
    Network,
    NetworkPacket,
    PacketHeader,
    Transport,
    crc16_le,
)

SOURCE = b"\x02\x00\x00\x00\x00\x01"


class RecordingTransport(Transport):
    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send(self, destination, data):
        self.sent.append((destination, data))
        return self.ok


def make_network(ok=True):
    transport = RecordingTransport(ok)
    data = SystemData()
    lines = []
    return Network(transport, data, lines.append), transport, data, lines


def test_crc_of_empty_data_is_initial_value():
    assert crc16_le(b"") == 0xFFFF
    assert crc16_le(b"", 0x1234) == 0x1234


def test_crc_check_value():
    assert crc16_le(b"123456789") == 0xDE76


def test_crc_can_be_chained():
    whole = crc16_le(b"hello world")
    assert crc16_le(b" world", crc16_le(b"hello")) == whole


def test_crc_detects_change():
    assert crc16_le(b"\x01") != crc16_le(b"\x00")


def test_encode_layout():
    packet = NetworkPacket(PacketHeader(MessageId.DOCK_COMMAND, 1, 0x1234, 1), b"\x01")
    assert packet.encode() == b"\x14\x00\x00\x00\x01\x00\x34\x12\x01\x01"
    assert PacketHeader.SIZE == 9


def test_encode_decode_round_trip():
    packet = NetworkPacket(PacketHeader(MessageId.STATE_REPORT, 65535, 0xBEEF, 3), b"abc")
    decoded = NetworkPacket.decode(packet.encode())
    assert decoded == packet
    assert decoded.header.message_id is MessageId.STATE_REPORT


def test_decode_keeps_unknown_message_id():
    packet = NetworkPacket(PacketHeader(99, 0, 0xFFFF, 0))
    assert NetworkPacket.decode(packet.encode()).header.message_id == 99


def test_decode_rejects_short_data():
    with pytest.raises(ValueError):
        NetworkPacket.decode(b"\x00\x00")
    full = NetworkPacket(PacketHeader(MessageId.HELLO, 0, 0, 4), b"abcd").encode()
    with pytest.raises(ValueError):
        NetworkPacket.decode(full[:-1])


def test_packet_length_must_match_payload():
    with pytest.raises(ValueError):
        NetworkPacket(PacketHeader(MessageId.HELLO, 0, 0, 2), b"a")


def test_send_broadcasts_with_sequence_and_crc():
    network, transport, _, _ = make_network()
    assert network.send(MessageId.HELLO)
    assert network.send(MessageId.DOCK_COMMAND, b"\x01")
    assert network.transmit_pending() == 2
    destinations = [destination for destination, _ in transport.sent]
    assert destinations == [BROADCAST_MAC, BROADCAST_MAC]
    packets = [NetworkPacket.decode(data) for _, data in transport.sent]
    assert [p.header.seq_num for p in packets] == [0, 1]
    assert packets[1].header.crc == crc16_le(b"\x01")
    assert packets[1].payload == b"\x01"


def test_send_rejects_oversized_payload():
    network, _, _, _ = make_network()
    with pytest.raises(ValueError):
        network.send(MessageId.HELLO, bytes(256))


def test_send_queue_is_bounded():
    network, transport, _, _ = make_network()
    results = [network.send(MessageId.HELLO) for _ in range(ESPNOW_QUEUE_SIZE + 1)]
    assert results == [True] * ESPNOW_QUEUE_SIZE + [False]
    assert network.transmit_pending() == ESPNOW_QUEUE_SIZE
    assert len(transport.sent) == ESPNOW_QUEUE_SIZE


def test_transport_failure_is_reported():
    network, _, _, lines = make_network(ok=False)
    network.send(MessageId.HELLO)
    assert network.transmit_pending() == 0
    assert lines == ["Failed to send data"]


def test_send_complete_failure_is_reported():
    network, _, _, lines = make_network()
    network.on_send_complete(True)
    assert lines == []
    network.on_send_complete(False)
    assert lines == ["Send FAILED"]


def test_dock_command_round_trip_sets_request():
    network, transport, data, lines = make_network()
    network.send(MessageId.DOCK_COMMAND, b"\x01")
    network.transmit_pending()
    assert network.on_receive(SOURCE, BROADCAST_MAC, transport.sent[0][1])
    assert network.process_received() == 1
    assert data.docking_requested is True
    assert lines == ["Received: DOCK_COMMAND", "bDockingRequested: TRUE"]


def test_dock_command_can_clear_request():
    network, transport, data, lines = make_network()
    data.docking_requested = True
    network.send(MessageId.DOCK_COMMAND, b"\x00")
    network.transmit_pending()
    network.on_receive(SOURCE, BROADCAST_MAC, transport.sent[0][1])
    network.process_received()
    assert data.docking_requested is False
    assert lines[-1] == "bDockingRequested: FALSE"


def test_state_report_round_trip():
    network, transport, _, lines = make_network()
    network.send(MessageId.STATE_REPORT, StateReport("TOP_LEFT", "SYSTEM_LOCKED"))
    network.transmit_pending()
    network.on_receive(SOURCE, BROADCAST_MAC, transport.sent[0][1])
    network.process_received()
    assert lines == ["Received: Endpoint: TOP_LEFT, State: SYSTEM_LOCKED"]


@pytest.mark.parametrize(
    "message_id, expected",
    [
        (MessageId.HELLO, "Received: HELLO"),
        (MessageId.ERROR_REPORT, "Received: ERROR_REPORT"),
        (42, "Received: UNKNOWN"),
    ],
)
def test_handle_simple_messages(message_id, expected):
    network, _, _, lines = make_network()
    network.handle_packet(NetworkPacket(PacketHeader(message_id, 0, 0, 0)))
    assert lines == [expected]


def test_system_report_is_printed_without_changing_state():
    network, _, data, lines = make_network()
    network.handle_packet(
        NetworkPacket(PacketHeader(MessageId.SYSTEM_REPORT, 0, 0, 1), b"\x01")
    )
    assert lines == ["Received: bDockingRequested: TRUE"]
    assert data.docking_requested is False


def test_bad_crc_is_rejected():
    network, transport, _, lines = make_network()
    network.send(MessageId.DOCK_COMMAND, b"\x01")
    network.transmit_pending()
    corrupted = transport.sent[0][1][:-1] + b"\x00"
    assert not network.on_receive(SOURCE, BROADCAST_MAC, corrupted)
    assert lines == ["Received BAD data"]
    assert network.process_received() == 0


def test_truncated_data_is_rejected():
    network, _, _, lines = make_network()
    assert not network.on_receive(SOURCE, BROADCAST_MAC, b"\x00\x01")
    assert lines == ["Received BAD data"]


def test_missing_source_or_data_is_ignored():
    network, _, _, lines = make_network()
    good = NetworkPacket(PacketHeader(MessageId.HELLO, 0, crc16_le(b""), 0)).encode()
    assert not network.on_receive(None, BROADCAST_MAC, good)
    assert not network.on_receive(SOURCE, BROADCAST_MAC, b"")
    assert lines == []
    assert network.process_received() == 0


def test_receive_queue_is_bounded():
    network, _, _, _ = make_network()
    good = NetworkPacket(PacketHeader(MessageId.HELLO, 0, crc16_le(b""), 0)).encode()
    results = [network.on_receive(SOURCE, BROADCAST_MAC, good) for _ in range(ESPNOW_QUEUE_SIZE + 1)]
    assert results == [True] * ESPNOW_QUEUE_SIZE + [False]
    assert network.process_received() == ESPNOW_QUEUE_SIZE