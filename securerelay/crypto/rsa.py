"""
RSA Key Transport

Generates the server keypair, moves keys to and from their base64 text
form, and wraps session keys with RSA PKCS#1 v1.5 encryption.
"""

from typing import NamedTuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..common.exceptions import FormatError, IntegrityError
from ..common.utils import b64encode, b64decode

PUBLIC_EXPONENT = 65537
# PKCS#1 v1.5 encryption padding is at least 11 bytes
PKCS1_OVERHEAD = 11


class KeyPair(NamedTuple):
    public_key: rsa.RSAPublicKey
    private_key: rsa.RSAPrivateKey


def generate_keypair(bits: int = 2048) -> KeyPair:
    """
    Generate an RSA keypair.

    Args:
        bits: Modulus size in bits

    Returns:
        KeyPair of (public_key, private_key)
    """
    private_key = rsa.generate_private_key(
        public_exponent=PUBLIC_EXPONENT,
        key_size=bits,
    )
    return KeyPair(private_key.public_key(), private_key)


def keypair_from_private(private_key: rsa.RSAPrivateKey) -> KeyPair:
    return KeyPair(private_key.public_key(), private_key)


def encode_public_key(public_key: rsa.RSAPublicKey) -> str:
    """Encode a public key as base64 DER (SubjectPublicKeyInfo)."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return b64encode(der)


def decode_public_key(text: str) -> rsa.RSAPublicKey:
    """
    Decode a base64 DER public key.

    Raises:
        FormatError: If the text is not an RSA public key
    """
    der = b64decode(text.strip())
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, TypeError) as e:
        raise FormatError(f"Invalid public key: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise FormatError("Public key is not an RSA key")
    return key


def encode_private_key(private_key: rsa.RSAPrivateKey) -> str:
    """Encode a private key as unencrypted base64 DER (PKCS#8)."""
    der = private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return b64encode(der)


def decode_private_key(text: str) -> rsa.RSAPrivateKey:
    """
    Decode a base64 DER (PKCS#8) private key.

    Raises:
        FormatError: If the text is not an RSA private key
    """
    der = b64decode(text.strip())
    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError) as e:
        raise FormatError(f"Invalid private key: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise FormatError("Private key is not an RSA key")
    return key


def max_plaintext_length(public_key: rsa.RSAPublicKey) -> int:
    """Largest input accepted by rsa_encrypt for this key."""
    return public_key.key_size // 8 - PKCS1_OVERHEAD


def rsa_encrypt(data: bytes, public_key: rsa.RSAPublicKey) -> bytes:
    """
    Encrypt a short payload with RSA PKCS#1 v1.5.

    Args:
        data: Payload, at most max_plaintext_length(public_key) bytes
        public_key: Recipient public key

    Returns:
        Ciphertext of key_size / 8 bytes

    Raises:
        ValueError: If the payload is too long for the key
    """
    limit = max_plaintext_length(public_key)
    if len(data) > limit:
        raise ValueError(f"RSA payload too long: {len(data)} > {limit} bytes")
    return public_key.encrypt(data, padding.PKCS1v15())


def rsa_decrypt(data: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
    """
    Decrypt an RSA PKCS#1 v1.5 ciphertext.

    Raises:
        IntegrityError: If the ciphertext does not decrypt under this key
    """
    try:
        return private_key.decrypt(data, padding.PKCS1v15())
    except ValueError as e:
        raise IntegrityError(f"RSA decryption failed: {e}") from e
