import os
from pathlib import Path
from typing import Optional, Union

from models.snapshot import EngineSnapshot
from services.persistence.base import decode_snapshot, encode_snapshot
from utils.logger import setup_logger

logger = setup_logger(__name__)


class JsonFileGateway:
    name = "file"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[EngineSnapshot]:
        if not self.path.exists():
            logger.info("No snapshot file found", extra={"path": str(self.path)})
            return None

        try:
            payload = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(
                "Failed to read snapshot file",
                extra={"path": str(self.path), "error": str(e)}
            )
            return None

        return decode_snapshot(payload, str(self.path))

    def save(self, snapshot: EngineSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(encode_snapshot(snapshot), encoding="utf-8")
        os.replace(tmp_path, self.path)

        logger.debug("Snapshot written", extra={"path": str(self.path)})
