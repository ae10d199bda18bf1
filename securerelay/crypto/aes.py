"""
AES Encryption/Decryption with PKCS#7 Padding

This module implements AES in ECB mode with PKCS#7 padding for the
per-connection session key. ECB is deterministic: equal plaintexts under
the same key give equal ciphertexts, and there is no authentication tag
beyond the padding check (not recommended for production!).
"""

import secrets

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..common.exceptions import IntegrityError

BLOCK_SIZE = 16
VALID_KEY_BITS = (128, 192, 256)


def pkcs7_pad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """
    Apply PKCS#7 padding to data.

    Args:
        data: Data to pad
        block_size: Block size in bytes (default: 16 for AES)

    Returns:
        Padded data
    """
    padding_length = block_size - (len(data) % block_size)
    return data + bytes([padding_length] * padding_length)


def pkcs7_unpad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """
    Remove PKCS#7 padding from data.

    Raises:
        IntegrityError: If padding is invalid
    """
    if not data:
        raise IntegrityError("Cannot unpad empty data")

    padding_length = data[-1]
    if padding_length < 1 or padding_length > block_size:
        raise IntegrityError(f"Invalid padding length: {padding_length}")

    if data[-padding_length:] != bytes([padding_length] * padding_length):
        raise IntegrityError("Invalid PKCS#7 padding")

    return data[:-padding_length]


def _check_key(key: bytes):
    if len(key) * 8 not in VALID_KEY_BITS:
        raise ValueError(f"AES requires a 16, 24 or 32-byte key, got {len(key)} bytes")


def _cipher(key: bytes) -> Cipher:
    return Cipher(algorithms.AES(key), modes.ECB())


def generate_key(bits: int = 128) -> bytes:
    """
    Generate a random AES key.

    Args:
        bits: Key size, one of 128, 192 or 256

    Returns:
        Random key bytes
    """
    if bits not in VALID_KEY_BITS:
        raise ValueError(f"Unsupported AES key size: {bits}")
    return secrets.token_bytes(bits // 8)


def encrypt(plaintext: bytes, key: bytes) -> bytes:
    """
    Encrypt bytes using AES-ECB with PKCS#7 padding.

    Args:
        plaintext: Bytes to encrypt
        key: 16, 24 or 32-byte AES key

    Returns:
        Raw ciphertext, a non-empty multiple of the block size

    Raises:
        ValueError: If key length is invalid
    """
    _check_key(key)

    encryptor = _cipher(key).encryptor()
    return encryptor.update(pkcs7_pad(plaintext)) + encryptor.finalize()


def decrypt(ciphertext: bytes, key: bytes) -> bytes:
    """
    Decrypt AES-ECB ciphertext and strip PKCS#7 padding.

    Args:
        ciphertext: Raw ciphertext
        key: 16, 24 or 32-byte AES key

    Returns:
        Decrypted plaintext bytes

    Raises:
        ValueError: If key length is invalid
        IntegrityError: If ciphertext length or padding is invalid
    """
    _check_key(key)

    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        raise IntegrityError(f"Invalid ciphertext length: {len(ciphertext)}")

    decryptor = _cipher(key).decryptor()
    padded_plaintext = decryptor.update(ciphertext) + decryptor.finalize()
    return pkcs7_unpad(padded_plaintext)


# Test function for development
if __name__ == "__main__":
    test_key = b'0123456789ABCDEF'
    test_message = "Hello, SecureRelay!".encode('utf-8')

    print(f"Original: {test_message}")

    encrypted = encrypt(test_message, test_key)
    print(f"Encrypted (hex): {encrypted.hex()}")

    decrypted = decrypt(encrypted, test_key)
    print(f"Decrypted: {decrypted}")

    assert decrypted == test_message, "Encryption/Decryption test failed!"
    print("\n[✓] AES encryption/decryption test passed!")
