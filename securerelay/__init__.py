"""
SecureRelay

A small encrypted chat relay:
- RSA key transport of a per-connection AES session key
- AES-encrypted, base64 line protocol
- Server-side fan-out, re-encrypted for each recipient
"""

__version__ = "1.0.0"
