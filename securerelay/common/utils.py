"""
Utility functions for SecureRelay.
"""

import base64
import binascii
import uuid

from .exceptions import FormatError


def b64encode(data: bytes) -> str:
    """
    Base64 encode bytes to string.

    The result uses the standard alphabet only, so it never contains a
    line terminator.

    Args:
        data: Bytes to encode

    Returns:
        Base64-encoded string
    """
    return base64.b64encode(data).decode('ascii')


def b64decode(data: str) -> bytes:
    """
    Base64 decode string to bytes.

    Args:
        data: Base64-encoded string

    Returns:
        Decoded bytes

    Raises:
        FormatError: If the text is not valid base64
    """
    try:
        return base64.b64decode(data.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise FormatError(f"Malformed base64 text: {e}") from e


def new_identity() -> str:
    """Return a unique handle identifying one connection."""
    return uuid.uuid4().hex
