"""
Tests for the cryptographic primitives and the base64 text codec.
"""

import os

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from securerelay.common.exceptions import FormatError, IntegrityError
from securerelay.common.utils import b64encode, b64decode
from securerelay.crypto import aes
from securerelay.crypto.rsa import (
    decode_private_key, decode_public_key, encode_private_key, encode_public_key,
    generate_keypair, max_plaintext_length, rsa_decrypt, rsa_encrypt,
)


@pytest.mark.parametrize("data", [b"", b"\x00", bytes(range(256)), os.urandom(1000)])
def test_b64_round_trip(data):
    assert b64decode(b64encode(data)) == data


def test_b64_output_is_a_single_line():
    encoded = b64encode(os.urandom(4096))
    assert "\n" not in encoded and "\r" not in encoded


@pytest.mark.parametrize("text", ["not base64!", "abc", "é==", "QUJD\nREVG"])
def test_b64_rejects_malformed_text(text):
    with pytest.raises(FormatError):
        b64decode(text)


@pytest.mark.parametrize("bits", [128, 192, 256])
def test_generate_key_sizes(bits):
    assert len(aes.generate_key(bits)) == bits // 8


def test_generate_key_rejects_unknown_size():
    with pytest.raises(ValueError):
        aes.generate_key(100)


@pytest.mark.parametrize("plaintext", [b"", b"hello", b"x" * 16, "héllo wörld".encode("utf-8"), os.urandom(333)])
def test_aes_round_trip(plaintext):
    key = aes.generate_key()
    ciphertext = aes.encrypt(plaintext, key)
    assert len(ciphertext) % aes.BLOCK_SIZE == 0
    assert aes.decrypt(ciphertext, key) == plaintext


def test_aes_is_deterministic_per_key():
    key = aes.generate_key()
    assert aes.encrypt(b"same line", key) == aes.encrypt(b"same line", key)
    assert aes.encrypt(b"same line", key) != aes.encrypt(b"same line", aes.generate_key())


def test_aes_rejects_bad_key_length():
    with pytest.raises(ValueError):
        aes.encrypt(b"data", b"short")
    with pytest.raises(ValueError):
        aes.decrypt(b"\x00" * 16, b"short")


@pytest.mark.parametrize("ciphertext", [b"", b"\x00" * 15, b"\x00" * 17])
def test_aes_rejects_bad_ciphertext_length(ciphertext):
    with pytest.raises(IntegrityError):
        aes.decrypt(ciphertext, aes.generate_key())


def test_aes_rejects_bad_padding():
    key = aes.generate_key()
    # A block whose last byte is 0 can never carry valid PKCS#7 padding
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    ciphertext = encryptor.update(b"A" * 15 + b"\x00") + encryptor.finalize()
    with pytest.raises(IntegrityError):
        aes.decrypt(ciphertext, key)


def test_pkcs7_unpad_checks_every_padding_byte():
    with pytest.raises(IntegrityError):
        aes.pkcs7_unpad(b"A" * 13 + b"\x01\x03\x03")
    assert aes.pkcs7_unpad(b"A" * 13 + b"\x03\x03\x03") == b"A" * 13


def test_rsa_round_trip(keypair):
    session_key = aes.generate_key()
    wrapped = rsa_encrypt(session_key, keypair.public_key)
    assert len(wrapped) == keypair.public_key.key_size // 8
    assert rsa_decrypt(wrapped, keypair.private_key) == session_key


def test_rsa_accepts_payload_at_the_bound(keypair):
    payload = os.urandom(max_plaintext_length(keypair.public_key))
    assert rsa_decrypt(rsa_encrypt(payload, keypair.public_key), keypair.private_key) == payload


def test_rsa_rejects_payload_over_the_bound(keypair):
    with pytest.raises(ValueError):
        rsa_encrypt(os.urandom(max_plaintext_length(keypair.public_key) + 1), keypair.public_key)


def test_rsa_decrypt_rejects_garbage(keypair):
    with pytest.raises(IntegrityError):
        rsa_decrypt(b"\x01\x02\x03", keypair.private_key)


def test_public_key_text_round_trip(keypair):
    text = encode_public_key(keypair.public_key)
    decoded = decode_public_key(text)
    assert decoded.public_numbers() == keypair.public_key.public_numbers()


def test_private_key_text_round_trip(keypair):
    decoded = decode_private_key(encode_private_key(keypair.private_key))
    assert decoded.private_numbers() == keypair.private_key.private_numbers()


@pytest.mark.parametrize("text", ["@@@", b64encode(b"definitely not DER")])
def test_decode_public_key_rejects_garbage(text):
    with pytest.raises(FormatError):
        decode_public_key(text)


def test_decode_private_key_rejects_public_key(keypair):
    with pytest.raises(FormatError):
        decode_private_key(encode_public_key(keypair.public_key))


def test_generate_keypair_size():
    keypair = generate_keypair(1024)
    assert keypair.public_key.key_size == 1024
    assert keypair.private_key.public_key().public_numbers() == keypair.public_key.public_numbers()
