from typing import Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from models.snapshot import SNAPSHOT_VERSION, EngineSnapshot
from utils.logger import setup_logger

logger = setup_logger(__name__)


@runtime_checkable
class PersistenceGateway(Protocol):
    """Durable store for the engine snapshot.

    ``load`` returns None when nothing usable is stored; ``save`` may raise and
    callers are expected to treat failures as non-fatal.
    """

    name: str

    def load(self) -> Optional[EngineSnapshot]:
        ...

    def save(self, snapshot: EngineSnapshot) -> None:
        ...


def encode_snapshot(snapshot: EngineSnapshot) -> str:
    return snapshot.model_dump_json()


def decode_snapshot(payload: Optional[str], source: str) -> Optional[EngineSnapshot]:
    if not payload:
        return None

    try:
        snapshot = EngineSnapshot.model_validate_json(payload)
    except ValidationError as e:
        logger.error(
            "Stored snapshot is unreadable, starting cold",
            extra={"source": source, "error": str(e)}
        )
        return None

    if snapshot.version != SNAPSHOT_VERSION:
        logger.warning(
            "Stored snapshot version mismatch, starting cold",
            extra={"source": source, "found": snapshot.version, "expected": SNAPSHOT_VERSION}
        )
        return None

    return snapshot
