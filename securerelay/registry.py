"""
Connection registry and broadcast relay.

The registry is the only state shared between connection threads. It owns
the set of live ConnectionRecords and fans chat events out to them, each
copy encrypted under the recipient's own session key.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .common.exceptions import SecureRelayException
from .common.protocol import ChatEvent
from .common.transport import LineChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionRecord:
    """A registered peer. Immutable once published."""
    identity: str
    display_name: str
    session_key: bytes = field(repr=False)
    channel: LineChannel = field(repr=False, compare=False)

    def deliver(self, text: str):
        self.channel.send_encrypted_line(text, self.session_key)


class ConnectionRegistry:
    """Thread-safe collection of ConnectionRecords keyed by identity."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, ConnectionRecord] = {}

    def register(self, record: ConnectionRecord):
        """
        Publish a record.

        Raises:
            ValueError: If another record already holds this identity
        """
        with self._lock:
            if record.identity in self._records:
                raise ValueError(f"Identity already registered: {record.identity}")
            self._records[record.identity] = record
        logger.info(f"Registered {record.display_name} ({record.identity}), {len(self)} online")

    def unregister(self, identity: str) -> bool:
        """
        Remove a record.

        Returns:
            True if a record was removed, False if it was already absent
        """
        with self._lock:
            record = self._records.pop(identity, None)
        if record is not None:
            logger.info(f"Client removed: {record.display_name} ({identity})")
        return record is not None

    def get(self, identity: str) -> Optional[ConnectionRecord]:
        with self._lock:
            return self._records.get(identity)

    def snapshot(self) -> List[ConnectionRecord]:
        """Consistent copy of the current records, safe to iterate."""
        with self._lock:
            return list(self._records.values())

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def broadcast(self, event: ChatEvent, exclude: Optional[str] = None) -> int:
        """
        Send an event to every registered peer except ``exclude``.

        Each recipient gets its own ciphertext. A failure to reach one
        recipient is logged and does not stop delivery to the others.

        Returns:
            Number of recipients the event was written to
        """
        text = str(event)
        delivered = 0

        for record in self.snapshot():
            if record.identity == exclude:
                continue
            # Removed since the snapshot was taken
            if record.identity not in self:
                continue
            try:
                record.deliver(text)
                delivered += 1
            except (SecureRelayException, OSError) as e:
                logger.warning(f"Send error to {record.display_name}: {e}")

        return delivered
