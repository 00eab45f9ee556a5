"""
Snapshot Store - memory + disk copy of the last good properties collection.

Memory is authoritative while the process lives. Disk survives restarts and
is only written after a successful upstream fetch, so a failed refresh never
truncates what is already there.
"""
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError

from buildout_proxy.config import Settings
from buildout_proxy.errors import ParseError
from buildout_proxy.models import Snapshot

logger = logging.getLogger(__name__)

CACHE_FILENAME = "listings.json"

# Disk cache: persistent volume in production, local in dev
VOLUME_DATA_DIR = Path("/data")
LOCAL_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def resolve_data_dir(settings: Settings) -> Path:
    if settings.data_dir:
        return Path(settings.data_dir)
    return VOLUME_DATA_DIR if VOLUME_DATA_DIR.exists() else LOCAL_DATA_DIR


class SnapshotStore:
    """Two-tier snapshot cache: load() / save() / current()."""

    def __init__(self, data_dir: Path, fallback_dirs: Sequence[Path] = ()):
        self.data_dir = Path(data_dir)
        self.cache_path = self.data_dir / CACHE_FILENAME
        self.read_paths: List[Path] = [self.cache_path]
        for d in fallback_dirs:
            path = Path(d) / CACHE_FILENAME
            if path not in self.read_paths:
                self.read_paths.append(path)
        self._snapshot = Snapshot.empty()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SnapshotStore":
        """An explicit DATA_DIR is the only location; otherwise try volume then local."""
        if settings.data_dir:
            return cls(Path(settings.data_dir))
        return cls(resolve_data_dir(settings), fallback_dirs=[VOLUME_DATA_DIR, LOCAL_DATA_DIR])

    def current(self) -> Snapshot:
        return self._snapshot

    def load(self) -> Snapshot:
        """
        Read the disk snapshot (first candidate file with properties) and prime
        memory with it if memory is still empty.
        """
        disk = self.read_disk()
        if self._snapshot.is_empty and not disk.is_empty:
            self._snapshot = disk
            logger.info(f"[SNAPSHOT] Primed from disk cache: {disk.count} listings.")
        return disk

    def save(self, snapshot: Snapshot) -> None:
        """Write to disk, then make the snapshot current."""
        self._write_disk(snapshot)
        self._snapshot = snapshot

    def read_disk(self) -> Snapshot:
        for path in self.read_paths:
            if not path.exists():
                continue
            try:
                snapshot = self._read_file(path)
            except ParseError as e:
                logger.warning(f"[SNAPSHOT] {e}")
                continue
            if not snapshot.is_empty:
                return snapshot
        return Snapshot.empty()

    @staticmethod
    def _read_file(path: Path) -> Snapshot:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ParseError(f"Unreadable snapshot {path}: {e}") from e
        if not isinstance(raw, dict) or not isinstance(raw.get("properties"), list):
            raise ParseError(f"Snapshot {path} has no properties list")
        try:
            return Snapshot.model_validate(raw)
        except ValidationError as e:
            raise ParseError(f"Invalid snapshot {path}: {e}") from e

    def _write_disk(self, snapshot: Snapshot) -> Optional[Path]:
        tmp = self.cache_path.with_suffix(".json.tmp")
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            # Write to temp file first, then atomic rename
            tmp.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
            tmp.replace(self.cache_path)
            return self.cache_path
        except OSError as e:
            logger.error(f"[SNAPSHOT] Failed to write cache: {e}")
            if tmp.exists():
                tmp.unlink()
            return None
