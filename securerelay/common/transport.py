"""
Encrypted line transport.

A LineChannel turns a connected stream socket into newline-framed UTF-8
text I/O, and layers the session cipher on top of it: every chat line is
AES-encrypted with the session key and base64 encoded onto one line.
"""

import logging
import socket
import threading
from typing import Optional

from ..crypto import aes
from .exceptions import FormatError, TransportError
from .utils import b64encode, b64decode

logger = logging.getLogger(__name__)


class LineChannel:
    """Line-oriented, thread-safe-for-writes wrapper around a socket."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._reader = sock.makefile('r', encoding='utf-8', errors='replace', newline='\n')
        self._writer = sock.makefile('w', encoding='utf-8', newline='\n')
        self._write_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read_line(self) -> Optional[str]:
        """
        Read one line without its terminator.

        Returns:
            The line, or None at end of stream

        Raises:
            TransportError: If the stream fails
        """
        try:
            line = self._reader.readline()
        except (OSError, ValueError) as e:
            if self._closed:
                return None
            raise TransportError(f"Read failed: {e}") from e

        if not line:
            return None
        return line.rstrip('\r\n')

    def write_line(self, text: str):
        """
        Write one line and flush it.

        Raises:
            TransportError: If the stream is closed or the write fails
        """
        with self._write_lock:
            if self._closed:
                raise TransportError("Channel is closed")
            try:
                self._writer.write(text + '\n')
                self._writer.flush()
            except (OSError, ValueError) as e:
                raise TransportError(f"Write failed: {e}") from e

    def send_encrypted_line(self, plain_text: str, key: bytes):
        """Encrypt one plaintext line under key and write it as base64."""
        ciphertext = aes.encrypt(plain_text.encode('utf-8'), key)
        self.write_line(b64encode(ciphertext))

    def receive_encrypted_line(self, key: bytes) -> Optional[str]:
        """
        Read and decrypt one line.

        Returns:
            The plaintext, or None at end of stream

        Raises:
            FormatError: If the line is not base64 or not UTF-8 once decrypted
            IntegrityError: If the ciphertext does not decrypt under key
            TransportError: If the stream fails
        """
        line = self.read_line()
        if line is None:
            return None

        plain_bytes = aes.decrypt(b64decode(line.strip()), key)
        try:
            return plain_bytes.decode('utf-8')
        except UnicodeDecodeError as e:
            raise FormatError(f"Decrypted line is not UTF-8: {e}") from e

    def close(self):
        """Shut the socket down and release it. Safe to call repeatedly."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        # Unblocks a reader parked in readline() on another thread
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Socket already disconnected: {e}")

        with self._write_lock:
            for stream in (self._writer, self._reader):
                try:
                    stream.close()
                except (OSError, ValueError) as e:
                    logger.debug(f"Ignoring error while closing stream: {e}")
        self.sock.close()
