import threading
from typing import Optional

from models.snapshot import EngineSnapshot
from services.persistence.base import decode_snapshot, encode_snapshot


class InMemoryGateway:
    """Keeps the last saved payload in process. Used in tests and by default."""

    name = "memory"

    def __init__(self, payload: Optional[str] = None):
        self._payload = payload
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> Optional[EngineSnapshot]:
        with self._lock:
            payload = self._payload
        return decode_snapshot(payload, self.name)

    def save(self, snapshot: EngineSnapshot) -> None:
        payload = encode_snapshot(snapshot)
        with self._lock:
            self._payload = payload
            self.save_count += 1

    @property
    def payload(self) -> Optional[str]:
        return self._payload
