"""
Persisted analysis store and the read-through cache around it.

Records are JSON documents, one file per analysis id, under a data directory.
An owner mismatch is indistinguishable from a missing record.
"""
import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from analyzer.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r'^[0-9a-f]{32}$')


def is_valid_analysis_id(analysis_id: str) -> bool:
    return bool(analysis_id) and bool(_ID_PATTERN.match(analysis_id))


class AnalysisStore:
    """File-backed store of analysis records keyed by id and owner."""

    def __init__(self, root):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, analysis_id: str) -> Optional[Path]:
        if not is_valid_analysis_id(analysis_id):
            return None
        return self.root / f"{analysis_id}.json"

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            return json.loads(path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            return None

    def create(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a new record.

        Raises:
            ValueError: If the id is malformed or already taken.
        """
        path = self._path(record.get("id", ""))
        if path is None:
            raise ValueError(f"Invalid analysis id: {record.get('id')!r}")

        with self._lock:
            if path.exists():
                raise ValueError(f"Analysis {record['id']} already exists")
            tmp_path = path.with_suffix('.tmp')
            tmp_path.write_text(json.dumps(record), encoding='utf-8')
            tmp_path.replace(path)

        logger.info(f"Persisted analysis {record['id']} for user {record.get('userId')}")
        return record

    def find_by_id(self, analysis_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(analysis_id)
        if path is None:
            return None

        record = self._read(path)
        if record is None or record.get("userId") != owner_id:
            return None
        return record

    def find_all_by_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        """All records of an owner, newest first."""
        records = []
        for path in self.root.glob('*.json'):
            record = self._read(path)
            if record is not None and record.get("userId") == owner_id:
                records.append(record)

        records.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
        return records

    def delete_by_id(self, analysis_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        """
        Delete a record owned by `owner_id`.

        Returns:
            The deleted record, or None when nothing matched.
        """
        path = self._path(analysis_id)
        if path is None:
            return None

        with self._lock:
            record = self._read(path)
            if record is None or record.get("userId") != owner_id:
                return None
            path.unlink()

        logger.info(f"Deleted analysis {analysis_id} for user {owner_id}")
        return record


class CachedAnalysisReader:
    """
    Read-through cache over AnalysisStore.

    Cache entries are invalidated in the same call that deletes the row, so a
    deleted analysis is never served from the cache.
    """

    def __init__(self, store: AnalysisStore, blob_store: BlobStore):
        self.store = store
        self.blob_store = blob_store

    def create(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return self.store.create(record)

    def get(self, analysis_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        cached = self.blob_store.get_cached_analysis(analysis_id)
        if cached is not None:
            if cached.get("userId") == owner_id:
                logger.debug(f"Cache hit for analysis {analysis_id}")
                return cached
            logger.warning(f"Ignoring cached analysis {analysis_id} for non-owner {owner_id}")
            return None

        record = self.store.find_by_id(analysis_id, owner_id)
        if record is None:
            return None

        self.blob_store.cache_analysis(record)
        return record

    def list(self, owner_id: str) -> List[Dict[str, Any]]:
        return self.store.find_all_by_owner(owner_id)

    def delete(self, analysis_id: str, owner_id: str) -> bool:
        deleted = self.store.delete_by_id(analysis_id, owner_id)
        if deleted is None:
            return False
        self.blob_store.invalidate_analysis(analysis_id)
        return True
