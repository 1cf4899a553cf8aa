"""JSON file key/value store."""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from storage.keys import storage_key

logger = logging.getLogger(__name__)


class JsonFileStore:
    """
    Key/value store kept in a single JSON object on disk.

    Serves as the device-local store and, for single-machine use, as the
    shared store. Every set rewrites the whole file through a temporary file
    so a reader never sees a half-written document.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Args:
            path: Location of the JSON file; parent directories are created
                on first write
        """
        self.path = Path(path).expanduser()
        logger.info(f"Initialized JsonFileStore at: {self.path}")

    def get(self, key: str, shared: bool = False) -> Optional[str]:
        """
        Read the text stored under a key.

        Raises:
            OSError: If the file exists but cannot be read
            ValueError: If the file does not hold a JSON object
        """
        return self._read().get(storage_key(key, shared))

    def set(self, key: str, value: str, shared: bool = False) -> None:
        """Store text under a key, replacing any previous value."""
        data = self._read()
        data[storage_key(key, shared)] = value
        self._write(data)
        logger.debug(f"Wrote {len(value)} characters under '{key}'")

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        with open(self.path, encoding='utf-8') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {self.path}")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise
