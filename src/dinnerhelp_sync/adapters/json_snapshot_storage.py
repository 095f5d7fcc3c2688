"""JSON file storage for local store snapshots."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from dinnerhelp_sync.services.local_state import SnapshotStorage

_logger = logging.getLogger(__name__)


@dataclass
class JsonSnapshotStorage(SnapshotStorage):
    """Stores each key as ``<directory>/<key>.json``."""

    directory: Path

    def load(self, key: str) -> dict[str, object] | None:
        """Return the stored payload, or None when missing or unreadable."""
        path = self._path(key)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except json.JSONDecodeError:
            _logger.warning("Ignoring corrupt snapshot %s", path)
            return None
        return payload if isinstance(payload, dict) else None

    def save(self, key: str, payload: dict[str, object]) -> None:
        """Replace the payload atomically."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, temp_name = tempfile.mkstemp(
            dir=self.directory, prefix=f".{key}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False)
            os.replace(temp_name, path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        """Remove the payload for a key."""
        self._path(key).unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"
