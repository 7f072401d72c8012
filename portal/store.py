"""
JSON file persistence for schedule and timecard snapshots.

Each save writes two files under the data directory: ``<name>-<date>.json``
for the run's history and ``<name>-latest.json``, which the next run reads
as its previous snapshot.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional, Type, TypeVar, Union

import structlog
from pydantic import BaseModel, ValidationError

from utilities.dates import format_date

logger = structlog.get_logger(__name__)

SnapshotT = TypeVar("SnapshotT", bound=BaseModel)


class SnapshotStore:
    """Reads and writes canonical snapshots as JSON files."""

    def __init__(self, data_dir: Union[str, Path]):
        """
        Initialize snapshot store.

        Args:
            data_dir: Directory holding the snapshot files
        """
        self.data_dir = Path(data_dir)
        self.logger = logger.bind(component="snapshot_store")

    def dated_path(self, name: str, run_date: date) -> Path:
        return self.data_dir / f"{name}-{format_date(run_date)}.json"

    def latest_path(self, name: str) -> Path:
        return self.data_dir / f"{name}-latest.json"

    def load_latest(self, name: str, model: Type[SnapshotT]) -> Optional[SnapshotT]:
        """
        Load the most recent snapshot stored under ``name``.

        Returns None when nothing was stored yet, or when the stored file
        cannot be read back into ``model``.
        """
        path = self.latest_path(name)
        if not path.exists():
            self.logger.info("No previous snapshot", name=name)
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return model.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            self.logger.warning("Failed to load previous snapshot", name=name, path=str(path), error=str(e))
            return None

    def save(self, name: str, run_date: date, snapshot: BaseModel) -> Path:
        """
        Persist a snapshot under its dated key and the latest key.

        Returns:
            Path of the dated file
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot.model_dump(mode="json", by_alias=True), indent=2)

        dated = self.dated_path(name, run_date)
        for path in (dated, self.latest_path(name)):
            with open(path, "w", encoding="utf-8") as f:
                f.write(payload)

        self.logger.debug("Saved snapshot", name=name, path=str(dated))
        return dated
