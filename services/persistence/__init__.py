from pathlib import Path
from typing import Optional

from services.persistence.base import PersistenceGateway, decode_snapshot, encode_snapshot
from services.persistence.database import DatabaseGateway
from services.persistence.json_file import JsonFileGateway
from services.persistence.memory import InMemoryGateway
from services.persistence.writer import WriteBehindWriter


def build_gateway(backend: str, snapshot_path: Optional[str] = None, engine=None,
                  key: str = "workout_recommendation_data") -> PersistenceGateway:
    backend = backend.lower()
    if backend == "memory":
        return InMemoryGateway()
    if backend == "file":
        if not snapshot_path:
            raise ValueError("file persistence requires a snapshot path")
        return JsonFileGateway(Path(snapshot_path))
    if backend == "database":
        if engine is None:
            from config.database import engine as default_engine
            engine = default_engine
        return DatabaseGateway(engine, key=key)
    raise ValueError(f"Unknown persistence backend: {backend}")


__all__ = [
    "PersistenceGateway",
    "InMemoryGateway",
    "JsonFileGateway",
    "DatabaseGateway",
    "WriteBehindWriter",
    "build_gateway",
    "decode_snapshot",
    "encode_snapshot",
]
