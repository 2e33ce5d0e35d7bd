from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from config.database import create_db_and_tables
from models.snapshot import SNAPSHOT_VERSION, EngineSnapshot, RecommenderSnapshot
from models.events import utcnow
from services.persistence.base import decode_snapshot, encode_snapshot
from utils.logger import setup_logger

logger = setup_logger(__name__)


class DatabaseGateway:
    """Stores the snapshot as a single keyed row in ``recommender_snapshot``."""

    name = "database"

    def __init__(self, engine: Engine, key: str = "workout_recommendation_data"):
        self.engine = engine
        self.key = key
        create_db_and_tables(engine)

    def load(self) -> Optional[EngineSnapshot]:
        with Session(self.engine) as session:
            row = session.get(RecommenderSnapshot, self.key)
            if row is None:
                logger.info("No stored snapshot row", extra={"key": self.key})
                return None
            payload = row.payload

        return decode_snapshot(payload, f"database:{self.key}")

    def save(self, snapshot: EngineSnapshot) -> None:
        payload = encode_snapshot(snapshot)

        with Session(self.engine) as session:
            row = session.get(RecommenderSnapshot, self.key)
            if row is None:
                row = RecommenderSnapshot(key=self.key, payload=payload)
            row.payload = payload
            row.version = SNAPSHOT_VERSION
            row.updated_at = utcnow()
            session.add(row)
            session.commit()
