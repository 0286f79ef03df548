import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

VOTED_KEY = "votedVenues"
REPORTED_KEY = "reportedVenues"

# one server process, many sessions
_file_lock = threading.Lock()


def new_client_id() -> str:
    return uuid.uuid4().hex


class LocalFlags:
    """Per-client "already voted" / "already reported" markers.

    The file holds one entry per client id:
    ``{"<client id>": {"votedVenues": {...}, "reportedVenues": {...}}}``.
    Nothing here is sent to the vote store, so a client that drops its id
    can vote again.
    """

    def __init__(self, path, client_id: str):
        if not client_id:
            raise ValueError("client_id is required")
        self.path = Path(path)
        self.client_id = client_id

    def _read_all(self):
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable flags file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _flags(self, key):
        entry = self._read_all().get(self.client_id)
        if not isinstance(entry, dict):
            return {}
        flags = entry.get(key)
        return flags if isinstance(flags, dict) else {}

    def _mark(self, key, venue_id):
        # Re-read under the lock so other sessions' flags survive the write
        with _file_lock:
            data = self._read_all()
            entry = data.get(self.client_id)
            if not isinstance(entry, dict):
                entry = {}
            flags = entry.get(key)
            if not isinstance(flags, dict):
                flags = {}
            flags[venue_id] = True
            entry[key] = flags
            data[self.client_id] = entry
            self._write_all(data)

    def has_voted(self, venue_id: str) -> bool:
        return bool(self._flags(VOTED_KEY).get(venue_id))

    def mark_voted(self, venue_id: str):
        self._mark(VOTED_KEY, venue_id)

    def has_reported(self, venue_id: str) -> bool:
        return bool(self._flags(REPORTED_KEY).get(venue_id))

    def mark_reported(self, venue_id: str):
        self._mark(REPORTED_KEY, venue_id)
