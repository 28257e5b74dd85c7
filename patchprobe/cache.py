"""On-disk memo of image classifications.

The whole file is loaded into memory on first use, mutated in memory, and
written back only when ``flush`` is called. A scan that dies before its
flush leaves the previous file untouched.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from patchprobe.schemas import CacheEntry

logger = logging.getLogger(__name__)


class ClassificationCache:
    """Lazily loaded, lock-protected CacheEntry bound to one file path."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entry: Optional[CacheEntry] = None
        self._lock = threading.Lock()

    def load(self) -> CacheEntry:
        """Read the entry from disk. Missing or broken files give an empty entry."""
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return CacheEntry.model_validate(data)
        except FileNotFoundError:
            logger.debug("No cache file at %s", self.path)
        except (OSError, ValueError, ValidationError) as e:
            logger.debug("Ignoring unreadable cache file %s: %s", self.path, e)
        return CacheEntry()

    @property
    def entry(self) -> CacheEntry:
        with self._lock:
            if self._entry is None:
                self._entry = self.load()
            return self._entry

    def lookup(self, image_id: str) -> Optional[bool]:
        entry = self.entry
        with self._lock:
            return entry.lookup(image_id)

    def record(self, image_id: str, matched: bool) -> None:
        entry = self.entry
        with self._lock:
            entry.add(image_id, matched)

    def reset(self) -> None:
        """Forget every classification; used by forced rescans."""
        entry = self.entry
        with self._lock:
            entry.clear()

    def mark_valid(self) -> None:
        entry = self.entry
        with self._lock:
            entry.valid = True

    def flush(self, entry: Optional[CacheEntry] = None) -> bool:
        """Atomically write ``entry`` (default: the in-memory one) to disk.

        Returns False and logs a warning when the write fails.
        """
        if entry is not None:
            with self._lock:
                self._entry = entry
        entry = self.entry

        with self._lock:
            payload = entry.model_dump(mode="json", by_alias=True)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.warning("Cache flush failed: %s", e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False
        return True
