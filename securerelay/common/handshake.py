"""
Session handshake.

Executed once per connection, before any chat traffic:

1. server -> peer:   base64 DER RSA public key
2. peer -> server:   base64 RSA-wrapped AES session key
3. server:           unwrap the session key with its private key
4. peer -> server:   NICK|<display name>

Any failure raises HandshakeError; there is no retry.
"""

import logging
from typing import NamedTuple

from ..crypto import aes
from ..crypto.rsa import (
    KeyPair, encode_public_key, decode_public_key, rsa_encrypt, rsa_decrypt,
)
from .exceptions import HandshakeError, SecureRelayException
from .protocol import format_nick, parse_nick
from .transport import LineChannel
from .utils import b64encode, b64decode

logger = logging.getLogger(__name__)

VALID_SESSION_KEY_LENGTHS = (16, 24, 32)


class HandshakeResult(NamedTuple):
    session_key: bytes
    display_name: str


def _require_line(channel: LineChannel, what: str) -> str:
    line = channel.read_line()
    if line is None:
        raise HandshakeError(f"No {what} received")
    return line


def server_handshake(channel: LineChannel, keypair: KeyPair) -> HandshakeResult:
    """
    Run the server side of the handshake.

    Args:
        channel: Freshly accepted connection
        keypair: Server RSA keypair

    Returns:
        HandshakeResult with the recovered session key and display name

    Raises:
        HandshakeError: On any missing, malformed or undecryptable line
    """
    try:
        channel.write_line(encode_public_key(keypair.public_key))

        wrapped_key = b64decode(_require_line(channel, "session key"))
        session_key = rsa_decrypt(wrapped_key, keypair.private_key)
        if len(session_key) not in VALID_SESSION_KEY_LENGTHS:
            raise HandshakeError(f"Invalid session key length: {len(session_key)}")

        display_name = parse_nick(_require_line(channel, "nickname"))
    except HandshakeError:
        raise
    except SecureRelayException as e:
        raise HandshakeError(f"Handshake failed: {e}") from e

    logger.debug(f"Session key established for {display_name}")
    return HandshakeResult(session_key, display_name)


def client_handshake(channel: LineChannel, display_name: str, key_bits: int = 128) -> bytes:
    """
    Run the peer side of the handshake.

    Args:
        channel: Connected channel to the server
        display_name: Nickname to register
        key_bits: Session key size

    Returns:
        The session key generated for this connection

    Raises:
        HandshakeError: If the display name is invalid, the server key is
            missing or malformed, or the connection drops mid-handshake
    """
    try:
        nick_line = format_nick(display_name)
        server_public_key = decode_public_key(_require_line(channel, "server public key"))

        session_key = aes.generate_key(key_bits)
        channel.write_line(b64encode(rsa_encrypt(session_key, server_public_key)))
        channel.write_line(nick_line)
    except HandshakeError:
        raise
    except (SecureRelayException, ValueError) as e:
        raise HandshakeError(f"Handshake failed: {e}") from e

    return session_key
