"""
Custom exceptions for SecureRelay.
"""


class SecureRelayException(Exception):
    """Base exception for SecureRelay errors."""
    pass


class HandshakeError(SecureRelayException):
    """Session handshake failed; the connection must be dropped."""
    pass


class IntegrityError(SecureRelayException):
    """Ciphertext could not be decrypted (bad length or padding)."""
    pass


class FormatError(SecureRelayException):
    """Text encoding of a payload or key is malformed."""
    pass


class TransportError(SecureRelayException):
    """Underlying stream failed or was closed."""
    pass


class ConfigError(SecureRelayException):
    """Configuration value or key file is invalid."""
    pass
