import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)


class TemplateStoreError(Exception):
    pass


class MemoryBackend:
    def __init__(self, data=None):
        self._data = dict(data or {})

    def get(self, key):
        return self._data.get(key)

    def put(self, key, payload):
        self._data[key] = bytes(payload)


class DirectoryBackend:
    """One JSON file per key, replaced atomically on every write."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key):
        safe = re.sub(r"[^\w-]", "_", key)
        return self.directory / f"{safe}.json"

    def get(self, key):
        path = self._path(key)
        if not path.exists():
            logger.debug(f"No template file for '{key}' at {path}")
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise TemplateStoreError(f"Failed to read template '{key}': {e}") from e

    def put(self, key, payload):
        final_path = self._path(key)
        temp_path = final_path.with_name(f"~{final_path.name}.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as f:
                f.write(payload)
            os.replace(temp_path, final_path)
        except OSError as e:
            raise TemplateStoreError(f"Failed to write template '{key}': {e}") from e
        logger.debug(f"Saved template '{key}' to {final_path}")
