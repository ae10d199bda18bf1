"""
Wire protocol constants and the chat event model.

Every logical unit on the wire is one UTF-8 line terminated by a newline.
The handshake sends the public key, the wrapped session key and a
``NICK|<name>`` line; everything after that is an encrypted chat line.
"""

from pydantic import BaseModel, ConfigDict

from .exceptions import HandshakeError

NICK_PREFIX = "NICK|"
SERVER_ORIGIN = "SERVER"

# Recognized after decryption, compared case-insensitively
SERVER_QUIT_MARKERS = frozenset({"/quit", "/exit"})
CLIENT_QUIT_MARKERS = frozenset({"bye", "goodbye"})

FAREWELL_TEXT = "Goodbye"


class ChatEvent(BaseModel):
    """One relayed line, rendered as ``<origin>: <body>``."""
    model_config = ConfigDict(frozen=True)

    origin: str
    body: str

    @classmethod
    def system(cls, body: str) -> "ChatEvent":
        """Build an event authored by the server itself."""
        return cls(origin=SERVER_ORIGIN, body=body)

    @classmethod
    def joined(cls, display_name: str) -> "ChatEvent":
        return cls.system(f"{display_name} joined the chat")

    @classmethod
    def left(cls, display_name: str) -> "ChatEvent":
        return cls.system(f"{display_name} left the chat")

    def __str__(self) -> str:
        return f"{self.origin}: {self.body}"


def format_nick(display_name: str) -> str:
    """
    Build the nickname registration line.

    Raises:
        ValueError: If the name is blank or contains a line break
    """
    name = display_name.strip()
    if not name:
        raise ValueError("Display name must not be empty")
    if "\n" in name or "\r" in name:
        raise ValueError("Display name must not contain line breaks")
    return NICK_PREFIX + name


def parse_nick(line: str) -> str:
    """
    Extract the display name from a ``NICK|<name>`` line.

    Raises:
        HandshakeError: If the marker is missing or the name is blank
    """
    if line is None or not line.startswith(NICK_PREFIX):
        raise HandshakeError("Nickname not provided")
    name = line[len(NICK_PREFIX):].strip()
    if not name:
        raise HandshakeError("Nickname is empty")
    return name


def is_server_quit(text: str) -> bool:
    return text.strip().lower() in SERVER_QUIT_MARKERS


def is_client_quit(text: str) -> bool:
    return text.strip().lower() in CLIENT_QUIT_MARKERS
