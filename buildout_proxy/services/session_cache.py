"""
Session-scoped cache of raw proxy payloads for the listings table.

Values are stored as JSON text under fixed versioned keys, the way the browser
table used sessionStorage. Bumping CACHE_VERSION invalidates old entries.
Optionally backed by a JSON file so a CLI "session" can span runs.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from buildout_proxy.errors import ParseError

logger = logging.getLogger(__name__)

CACHE_VERSION = "v1"
LISTINGS_CACHE_KEY = f"buildout:listings:{CACHE_VERSION}"
LEASE_SPACES_CACHE_KEY = f"buildout:lease_spaces:{CACHE_VERSION}"


class SessionCache:
    """String key/value store with JSON helpers."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._items: Dict[str, str] = {}
        if self.path and self.path.exists():
            try:
                stored = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(stored, dict):
                    self._items = {k: v for k, v in stored.items() if isinstance(v, str)}
            except (OSError, ValueError) as e:
                logger.warning(f"[SESSION] Ignoring unreadable cache file {self.path}: {e}")

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._persist()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._persist()

    def clear(self) -> None:
        self._items.clear()
        self._persist()

    def get_json(self, key: str) -> Any:
        """Decoded value for key, None if absent. Raises ParseError on bad JSON."""
        raw = self.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ParseError(f"Malformed cache entry {key}: {e}") from e

    def set_json(self, key: str, value: Any) -> None:
        try:
            self.set_item(key, json.dumps(value))
        except (TypeError, ValueError, OSError) as e:
            logger.warning(f"[SESSION] Could not cache {key}: {e}")

    def get_list(self, key: str) -> Optional[List[dict]]:
        """Cached non-empty list for key; malformed or empty entries are a miss."""
        try:
            value = self.get_json(key)
        except ParseError as e:
            logger.warning(f"[SESSION] {e} - treating as cache miss")
            self.remove_item(key)
            return None
        if isinstance(value, list) and value:
            return value
        return None

    def _persist(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._items), encoding="utf-8")
