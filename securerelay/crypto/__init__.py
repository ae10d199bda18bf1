"""
Cryptographic primitives for SecureRelay.

This package provides:
- AES encryption/decryption (ECB mode, PKCS#7 padding) for chat lines
- RSA keypairs and PKCS#1 v1.5 key transport for the session handshake
"""

from .aes import encrypt, decrypt, generate_key
from .rsa import (
    KeyPair, generate_keypair, keypair_from_private,
    encode_public_key, decode_public_key, encode_private_key, decode_private_key,
    max_plaintext_length, rsa_encrypt, rsa_decrypt,
)

__all__ = [
    'encrypt',
    'decrypt',
    'generate_key',
    'KeyPair',
    'generate_keypair',
    'keypair_from_private',
    'encode_public_key',
    'decode_public_key',
    'encode_private_key',
    'decode_private_key',
    'max_plaintext_length',
    'rsa_encrypt',
    'rsa_decrypt',
]
