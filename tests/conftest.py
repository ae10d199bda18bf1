"""
Shared fixtures for the SecureRelay test suite.
"""

import socket
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from securerelay.common.handshake import client_handshake
from securerelay.common.transport import LineChannel
from securerelay.crypto.rsa import generate_keypair
from securerelay.registry import ConnectionRegistry
from securerelay.server import SecureRelayServer

IO_TIMEOUT = 5.0


def wait_for(predicate, timeout: float = IO_TIMEOUT, interval: float = 0.01) -> bool:
    """Poll predicate until it is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class RecordingChannel:
    """Stands in for a LineChannel and remembers what was sent."""

    def __init__(self, on_send=None):
        self.sent = []
        self.on_send = on_send

    def send_encrypted_line(self, plain_text, key):
        if self.on_send is not None:
            self.on_send()
        self.sent.append((plain_text, key))


class Peer:
    """Test-side end of a relay connection."""

    def __init__(self, name: str, channel: LineChannel, session_key: bytes):
        self.name = name
        self.channel = channel
        self.session_key = session_key

    def say(self, text: str):
        self.channel.send_encrypted_line(text, self.session_key)

    def hear(self):
        return self.channel.receive_encrypted_line(self.session_key)

    def close(self):
        self.channel.close()


@pytest.fixture(scope="session")
def keypair():
    return generate_keypair(2048)


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=False)


@pytest.fixture
def channel_pair():
    """Two LineChannels joined by a local socket pair."""
    left_sock, right_sock = socket.socketpair()
    left_sock.settimeout(IO_TIMEOUT)
    right_sock.settimeout(IO_TIMEOUT)
    left, right = LineChannel(left_sock), LineChannel(right_sock)
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def relay_server(keypair, registry):
    server = SecureRelayServer(keypair, "127.0.0.1", 0, registry=registry)
    server.start()
    yield server
    server.shutdown()


@pytest.fixture
def connect_peer(relay_server, registry):
    """Factory: connect, handshake and wait until the server registered us."""
    peers = []

    def _connect(name: str) -> Peer:
        expected = len(registry) + 1
        sock = socket.create_connection(relay_server.server_address, timeout=IO_TIMEOUT)
        channel = LineChannel(sock)
        session_key = client_handshake(channel, name)
        assert wait_for(lambda: len(registry) >= expected), f"{name} was never registered"
        peer = Peer(name, channel, session_key)
        peers.append(peer)
        return peer

    yield _connect
    for peer in peers:
        peer.close()
