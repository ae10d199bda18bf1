#!/usr/bin/env python3
"""
SecureRelay Server

Accepts connections, runs the session handshake on each one in its own
thread, and relays chat lines between all registered peers:
1. Send the server RSA public key
2. Unwrap the peer's AES session key
3. Register the peer's nickname
4. Decrypt each incoming line and re-encrypt it for every other peer
"""

import argparse
import enum
import logging
import socket
import threading
from pathlib import Path
from typing import Optional, Tuple

from .common.config import Settings, configure_logging
from .common.exceptions import (
    ConfigError, FormatError, HandshakeError, IntegrityError, TransportError,
)
from .common.handshake import server_handshake
from .common.protocol import ChatEvent, FAREWELL_TEXT, is_server_quit
from .common.transport import LineChannel
from .common.utils import new_identity
from .crypto.rsa import KeyPair, decode_private_key, generate_keypair, keypair_from_private
from .registry import ConnectionRecord, ConnectionRegistry

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class PeerHandler:
    """
    Drives one accepted connection from handshake to teardown.

    All errors on this connection are contained here; nothing propagates
    to the accept loop or to other peers.
    """

    def __init__(self, sock: socket.socket, address, keypair: KeyPair, registry: ConnectionRegistry):
        self.address = address
        self.keypair = keypair
        self.registry = registry
        self.channel = LineChannel(sock)
        self.identity = new_identity()
        self.display_name: Optional[str] = None
        self.record: Optional[ConnectionRecord] = None
        self.state = ConnectionState.CONNECTING
        self._teardown_lock = threading.Lock()

    def run(self):
        """Thread target: handshake, receive loop, teardown."""
        logger.info(f"Accepted connection from {self.address}")
        try:
            if self.establish():
                self.receive_loop()
        except TransportError as e:
            logger.info(f"[{self.identity}] Connection lost: {e}")
        except Exception:
            logger.exception(f"[{self.identity}] Error in client handler")
        finally:
            self.close()

    def establish(self) -> bool:
        """Handshake, then publish this peer to the registry."""
        with self._teardown_lock:
            if self.state is not ConnectionState.CONNECTING:
                return False
            self.state = ConnectionState.HANDSHAKING

        try:
            session_key, display_name = server_handshake(self.channel, self.keypair)
        except HandshakeError as e:
            logger.warning(f"[{self.identity}] Handshake with {self.address} failed: {e}")
            return False

        with self._teardown_lock:
            # close() won the race while the handshake was running
            if self.state is not ConnectionState.HANDSHAKING:
                return False
            self.display_name = display_name
            self.record = ConnectionRecord(self.identity, display_name, session_key, self.channel)
            self.registry.register(self.record)
            self.state = ConnectionState.ACTIVE

        print(f"[+] User joined: {display_name}")
        self.registry.broadcast(ChatEvent.joined(display_name), exclude=self.identity)
        return True

    def receive_loop(self):
        """Relay decrypted lines until quit marker or end of stream."""
        key = self.record.session_key

        while True:
            try:
                plain = self.channel.receive_encrypted_line(key)
            except (IntegrityError, FormatError) as e:
                logger.warning(f"Decrypt error from {self.display_name}: {e}")
                continue

            if plain is None:
                logger.info(f"[{self.identity}] {self.display_name} closed the connection")
                return

            if is_server_quit(plain):
                self.record.deliver(str(ChatEvent.system(FAREWELL_TEXT)))
                return

            logger.debug(f"Received from {self.display_name} -> {plain}")
            self.registry.broadcast(ChatEvent(origin=self.display_name, body=plain), exclude=self.identity)

    def close(self):
        """Leave the chat exactly once, whichever path gets here first."""
        with self._teardown_lock:
            if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
                return
            self.state = ConnectionState.CLOSING

        try:
            if self.record is not None and self.registry.unregister(self.identity):
                self.registry.broadcast(ChatEvent.left(self.display_name), exclude=self.identity)
                print(f"[-] User left: {self.display_name}")
        finally:
            self.channel.close()
            self.state = ConnectionState.CLOSED
            logger.info(f"[{self.identity}] Connection from {self.address} closed")


class SecureRelayServer:
    """Accept loop spawning one PeerHandler thread per connection."""

    def __init__(self, keypair: KeyPair, host: str = "127.0.0.1", port: int = 6000,
                 registry: Optional[ConnectionRegistry] = None):
        self.keypair = keypair
        self.host = host
        self.port = port
        self.registry = registry if registry is not None else ConnectionRegistry()
        self._server_socket: Optional[socket.socket] = None
        self._shutdown = threading.Event()

    def bind(self) -> Tuple[str, int]:
        """Open the listening socket. Returns the bound address."""
        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server_socket.bind((self.host, self.port))
        server_socket.listen()
        self._server_socket = server_socket
        return self.server_address

    @property
    def server_address(self) -> Tuple[str, int]:
        return self._server_socket.getsockname()[:2]

    def serve_forever(self):
        """
        Accept connections until shutdown() or a listening-socket failure.

        Raises:
            OSError: If accept fails for any reason other than shutdown
        """
        if self._server_socket is None:
            self.bind()
        host, port = self.server_address
        logger.info(f"SecureRelay server listening on {host}:{port}")

        try:
            while not self._shutdown.is_set():
                try:
                    client_socket, address = self._server_socket.accept()
                except OSError:
                    if self._shutdown.is_set():
                        break
                    logger.critical("Server socket error", exc_info=True)
                    raise

                handler = PeerHandler(client_socket, address, self.keypair, self.registry)
                threading.Thread(target=handler.run, name=f"peer-{handler.identity}", daemon=True).start()
        finally:
            self._close_listener()

    def start(self) -> threading.Thread:
        """Bind and run serve_forever() on a background thread."""
        if self._server_socket is None:
            self.bind()
        thread = threading.Thread(target=self.serve_forever, name="relay-accept", daemon=True)
        thread.start()
        return thread

    def shutdown(self):
        """Stop accepting new connections. Live peers are left running."""
        self._shutdown.set()
        self._close_listener()

    def _close_listener(self):
        if self._server_socket is None:
            return
        try:
            self._server_socket.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Listener shutdown: {e}")
        self._server_socket.close()


def load_server_keypair(settings: Settings) -> KeyPair:
    """
    Load the keypair from settings.key_path, or generate a fresh one.

    Raises:
        ConfigError: If the key file cannot be read or decoded
    """
    if not settings.key_path:
        logger.info(f"Generating RSA keypair ({settings.rsa_key_bits} bits)")
        return generate_keypair(settings.rsa_key_bits)

    try:
        text = Path(settings.key_path).read_text(encoding='ascii')
        private_key = decode_private_key(text)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read key file {settings.key_path}: {e}") from e
    except FormatError as e:
        raise ConfigError(f"Invalid key file {settings.key_path}: {e}") from e

    logger.info(f"Loaded RSA private key from {settings.key_path}")
    return keypair_from_private(private_key)


def main(argv=None):
    parser = argparse.ArgumentParser(description="SecureRelay chat server")
    parser.add_argument("port", nargs="?", type=int, help="Port to listen on")
    parser.add_argument("--port", dest="port_option", type=int, help="Port to listen on (wins over the positional form)")
    parser.add_argument("--host", help="Host to bind")
    parser.add_argument("--key-file", help="Base64 PKCS#8 private key file")
    args = parser.parse_args(argv)
    port = args.port_option if args.port_option is not None else args.port

    try:
        settings = Settings.from_env(host=args.host, port=port, key_path=args.key_file)
        configure_logging(settings.log_level)
        keypair = load_server_keypair(settings)
    except ConfigError as e:
        print(f"[!] Server startup error: {e}")
        return 1

    print("=" * 70)
    print("  SECURERELAY SERVER")
    print("=" * 70 + "\n")

    server = SecureRelayServer(keypair, settings.host, settings.port)
    try:
        host, port = server.bind()
        print(f"[✓] Server listening on {host}:{port}")
        print("[*] Waiting for clients...\n")
        server.serve_forever()
    except KeyboardInterrupt:
        print("\n[*] Server shutting down...")
        server.shutdown()
    except OSError as e:
        print(f"[!] Server socket error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
