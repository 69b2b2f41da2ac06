"""TCP/UDP 리스너 통합 테스트."""

import socket
import threading

import pytest

from msghub.protocol import decode_frame
from msghub.server.listener import TcpListener, UdpListener
from msghub.server.processor import RequestProcessor

from .helpers import LineReader


@pytest.fixture
def hub():
    processor = RequestProcessor()
    thread = threading.Thread(target=processor.run, daemon=True)
    thread.start()
    tcp = TcpListener("127.0.0.1", 0, processor.requests)
    tcp.start()
    yield processor, tcp
    tcp.stop()
    processor.stop()
    thread.join(timeout=2)


def connect(listener):
    sock = socket.create_connection(listener.address, timeout=2)
    return sock, LineReader(sock)


def test_two_clients_converse(hub) -> None:
    _, tcp = hub
    a, a_reader = connect(tcp)
    b, b_reader = connect(tcp)

    a.sendall(b'{"Type":"set_name","TargetUUID":"u1","Text":"alice"}\n')
    a.sendall(b'{"Type":"join","TargetUUID":"u1","Room":"room_1"}\n')
    assert a_reader.next().type == "set_name"
    assert a_reader.next().type == "join"

    b.sendall(b'{"Type":"set_name","TargetUUID":"u2","Text":"bob"}\n')
    b.sendall(b'{"Type":"join","TargetUUID":"u2","Room":"room_1"}\n')
    b.sendall(b'{"Type":"new_msg","TargetUUID":"u2","Room":"room_1","Text":"hey"}\n')
    assert b_reader.next().type == "set_name"

    for reader in (a_reader, b_reader):
        join, msg = reader.next(), reader.next()
        assert (join.type, join.username) == ("join", "bob")
        assert (msg.type, msg.username, msg.text) == ("new_msg", "bob", "hey")
    a.close()
    b.close()


def test_reconnect_rebinds_user(hub) -> None:
    _, tcp = hub
    first, first_reader = connect(tcp)
    first.sendall(b'{"Type":"set_name","TargetUUID":"u1","Text":"alice"}\n')
    first_reader.next()
    first.close()

    second, second_reader = connect(tcp)
    second.sendall(b'{"Type":"list","TargetUUID":"u1"}\n')
    listing = second_reader.next()
    assert (listing.username, listing.text) == ("alice", "room_1, room_2")
    second.close()


def test_stop_closes_open_connections(hub) -> None:
    _, tcp = hub
    sock, _ = connect(tcp)
    sock.sendall(b'{"Type":"set_name","TargetUUID":"u1","Text":"alice"}\n')
    sock.recv(4096)
    tcp.stop()
    sock.settimeout(2)
    assert sock.recv(4096) == b""
    sock.close()


def test_bind_failure_raises() -> None:
    holder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    holder.bind(("127.0.0.1", 0))
    holder.listen(1)
    try:
        listener = TcpListener("127.0.0.1", holder.getsockname()[1], RequestProcessor().requests)
        with pytest.raises(OSError):
            listener.bind()
    finally:
        holder.close()


def test_udp_datagram_gets_one_response(hub) -> None:
    processor, _ = hub
    udp = UdpListener("127.0.0.1", 0, processor.requests)
    udp.start()
    client = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    client.settimeout(2)
    try:
        client.sendto(b'{"Type":"set_name","TargetUUID":"u9","Text":"dave"}', udp.address)
        data, _ = client.recvfrom(2048)
        assert decode_frame(data.strip()).text == "user name successfully set to 'dave'"

        client.sendto(b'{"Type":"list","TargetUUID":"u9"}\n', udp.address)
        data, _ = client.recvfrom(2048)
        assert decode_frame(data.strip()).text == "room_1, room_2"
    finally:
        client.close()
        udp.stop()
