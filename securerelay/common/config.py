"""
Runtime configuration for SecureRelay.

Values come from the environment, optionally seeded from a ``.env`` file:

    SERVER_HOST      host to bind (server) or connect to (client)
    SERVER_PORT      TCP port, 0 binds an ephemeral port
    RSA_KEY_BITS     size of the server keypair
    AES_KEY_BITS     size of the session key generated by clients
    SERVER_KEY_PATH  optional base64 PKCS#8 private key file
    LOG_LEVEL        logging level name
"""

import logging
import os
from typing import Literal, Optional

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class Settings(BaseModel):
    """Validated process-wide settings, read-only after startup."""
    host: str = "127.0.0.1"
    port: int = Field(6000, ge=0, le=65535)
    rsa_key_bits: int = Field(2048, ge=1024)
    aes_key_bits: Literal[128, 192, 256] = 128
    key_path: Optional[str] = None
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """
        Build settings from the environment.

        Precedence: keyword overrides (e.g. from command-line flags), then
        the process environment, then a ``.env`` file found from the working
        directory. ``None`` overrides are ignored. The process environment
        itself is never modified.

        Raises:
            ConfigError: If any value fails validation
        """
        file_values = dotenv_values(find_dotenv(usecwd=True))

        def getenv(name):
            value = os.getenv(name)
            return value if value is not None else file_values.get(name)

        raw = {
            "host": getenv("SERVER_HOST"),
            "port": getenv("SERVER_PORT"),
            "rsa_key_bits": getenv("RSA_KEY_BITS"),
            "aes_key_bits": getenv("AES_KEY_BITS"),
            "key_path": getenv("SERVER_KEY_PATH") or None,
            "log_level": getenv("LOG_LEVEL"),
        }
        raw.update({k: v for k, v in overrides.items() if v is not None})
        values = {k: v for k, v in raw.items() if v is not None}

        # Env values arrive as strings
        if "aes_key_bits" in values:
            try:
                values["aes_key_bits"] = int(values["aes_key_bits"])
            except ValueError as e:
                raise ConfigError(f"Invalid AES_KEY_BITS: {e}") from e

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def configure_logging(level: str = "INFO"):
    """Configure root logging once for a command-line entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
