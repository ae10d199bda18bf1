"""
Common utilities and protocol definitions for SecureRelay.
"""

from .exceptions import *
from .protocol import ChatEvent, format_nick, parse_nick, is_server_quit, is_client_quit
from .utils import b64encode, b64decode, new_identity

__all__ = [
    'SecureRelayException',
    'HandshakeError',
    'IntegrityError',
    'FormatError',
    'TransportError',
    'ConfigError',
    'ChatEvent',
    'format_nick',
    'parse_nick',
    'is_server_quit',
    'is_client_quit',
    'b64encode',
    'b64decode',
    'new_identity',
]
