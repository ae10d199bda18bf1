#!/usr/bin/env python3
"""
Generate the SecureRelay server keypair

Writes the private key (base64 DER, PKCS#8) and the public key (base64 DER,
SubjectPublicKeyInfo) so the server can keep the same keypair across
restarts via SERVER_KEY_PATH or --key-file.

Usage:
    python scripts/gen_keys.py --bits 2048 --out-dir keys
"""

import argparse
import os

from securerelay.crypto.rsa import encode_private_key, encode_public_key, generate_keypair


def generate_server_keys(bits: int = 2048, output_dir: str = "keys"):
    """
    Generate and save the server keypair.

    Args:
        bits: RSA modulus size
        output_dir: Directory to save the key files

    Returns:
        Tuple of (private_key_path, public_key_path)
    """
    os.makedirs(output_dir, exist_ok=True)

    print(f"[*] Generating RSA private key ({bits} bits)...")
    keypair = generate_keypair(bits)

    private_path = os.path.join(output_dir, "server_private.key")
    public_path = os.path.join(output_dir, "server_public.key")

    with open(private_path, "w") as f:
        f.write(encode_private_key(keypair.private_key) + "\n")
    os.chmod(private_path, 0o600)

    with open(public_path, "w") as f:
        f.write(encode_public_key(keypair.public_key) + "\n")

    print(f"[✓] Private key saved to: {private_path}")
    print(f"[✓] Public key saved to:  {public_path}")
    print(f"\n[*] Start the server with: SERVER_KEY_PATH={private_path}")

    return private_path, public_path


def main():
    parser = argparse.ArgumentParser(description="Generate the SecureRelay server keypair")
    parser.add_argument("--bits", type=int, default=2048, help="RSA key size (default: 2048)")
    parser.add_argument("--out-dir", default="keys", help="Output directory (default: keys)")
    args = parser.parse_args()

    if args.bits < 1024:
        parser.error("--bits must be at least 1024")

    generate_server_keys(args.bits, args.out_dir)


if __name__ == "__main__":
    main()
