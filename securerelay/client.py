#!/usr/bin/env python3
"""
SecureRelay Client

Connects to the relay, runs the peer side of the handshake and then
sends typed lines encrypted under its own session key while a background
thread prints whatever the server relays back.
"""

import argparse
import logging
import socket
import threading
from typing import Callable, Iterable, Optional

from .common.config import Settings, configure_logging
from .common.exceptions import (
    ConfigError, FormatError, HandshakeError, IntegrityError, TransportError,
)
from .common.handshake import client_handshake
from .common.protocol import NICK_PREFIX, format_nick, is_client_quit
from .common.transport import LineChannel

logger = logging.getLogger(__name__)


class SecureRelayClient:
    def __init__(self, host: str, port: int, nickname: str, key_bits: int = 128,
                 on_message: Callable[[str], None] = print):
        """
        Raises:
            ValueError: If the nickname is blank or contains a line break
        """
        self.host = host
        self.port = port
        # Rejected here so no connection is opened for a name the server would refuse
        self.nickname = format_nick(nickname)[len(NICK_PREFIX):]
        self.key_bits = key_bits
        self.on_message = on_message

        self.channel: Optional[LineChannel] = None
        self.session_key: Optional[bytes] = None
        self.listener: Optional[threading.Thread] = None

    def connect(self):
        """
        Connect, establish the session key and start the listener thread.

        Raises:
            OSError: If the server cannot be reached
            HandshakeError: If the handshake fails
        """
        sock = socket.create_connection((self.host, self.port))
        self.channel = LineChannel(sock)
        try:
            self.session_key = client_handshake(self.channel, self.nickname, self.key_bits)
        except Exception:
            self.channel.close()
            raise

        logger.info(f"Connected to {self.host}:{self.port} as {self.nickname}")
        self.listener = threading.Thread(target=self._listen, name="relay-listener", daemon=True)
        self.listener.start()

    def _listen(self):
        """Print relayed lines until the server closes the stream."""
        try:
            while True:
                try:
                    plain = self.channel.receive_encrypted_line(self.session_key)
                except (IntegrityError, FormatError) as e:
                    logger.warning(f"Decrypt incoming error: {e}")
                    continue
                if plain is None:
                    break
                self.on_message(plain)
        except TransportError as e:
            logger.info(f"Connection lost: {e}")
        finally:
            self.close()

    def send(self, text: str):
        """Encrypt and send one line."""
        self.channel.send_encrypted_line(text, self.session_key)

    def chat_loop(self, lines: Iterable[str]):
        """
        Send each line; Bye or Goodbye is sent and then ends the session.
        """
        for line in lines:
            if self.channel.closed:
                break
            self.send(line)
            if is_client_quit(line):
                break

    def close(self):
        if self.channel is not None:
            self.channel.close()


def _console_lines(prompt: str = ""):
    while True:
        try:
            yield input(prompt)
        except EOFError:
            return


def main(argv=None):
    parser = argparse.ArgumentParser(description="SecureRelay chat client")
    parser.add_argument("--host", help="Server host")
    parser.add_argument("--port", type=int, help="Server port")
    parser.add_argument("--nick", help="Display name")
    args = parser.parse_args(argv)

    host = args.host or input("Server IP : ").strip()
    port = args.port if args.port is not None else int(input("Port : ").strip())
    nick = args.nick or input("Nickname : ").strip()

    try:
        settings = Settings.from_env(host=host, port=port)
    except ConfigError as e:
        print(f"[!] Client error: {e}")
        return 1
    configure_logging(settings.log_level)

    try:
        client = SecureRelayClient(settings.host, settings.port, nick, settings.aes_key_bits)
    except ValueError as e:
        print(f"[!] Invalid nickname: {e}")
        return 1

    try:
        client.connect()
        print(f"[✓] Connected to {settings.host}:{settings.port} as {nick}")
        print("[*] Type your messages below. 'Bye' or 'Goodbye' ends the session.\n")
        client.chat_loop(_console_lines())
    except (OSError, HandshakeError, TransportError) as e:
        print(f"\n[!] Client error: {e}")
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        client.close()
        print("[*] You quit conversation")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
