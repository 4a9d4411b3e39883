"""Client-local durable key/value storage backed by a single JSON file."""

import json
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from tunelight.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

# Keys shared with the rest of the app. Each holds one flat string value.
ACCESS_TOKEN_KEY = "spotify_access_token"
TOKEN_EXPIRES_AT_KEY = "spotify_token_expires_at"
CODE_VERIFIER_KEY = "spotify_code_verifier"
CODE_VERIFIER_CREATED_AT_KEY = "spotify_code_verifier_created_at"
WLED_IP_KEY = "wled_ip"


class LocalStorage:
    """Flat string key/value store mirrored to disk.

    Every mutation rewrites the whole file through a temp file and
    ``os.replace``. When the write fails the in-memory mirror is restored
    before the error propagates, so memory and disk never disagree.
    """

    def __init__(self, path: Path):
        self.path = path
        self._data: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            log_with_context(
                logger,
                "warning",
                "Local storage unreadable, starting empty",
                path=str(self.path),
                error=str(e),
                event_type="storage_unreadable",
            )
            return {}

        if not isinstance(data, dict):
            log_with_context(
                logger,
                "warning",
                "Local storage is not a JSON object, starting empty",
                path=str(self.path),
                event_type="storage_invalid",
            )
            return {}

        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _commit(self, data: dict[str, str]) -> None:
        previous = self._data
        self._data = data
        try:
            self._write(data)
        except OSError as e:
            self._data = previous
            log_with_context(
                logger,
                "error",
                "Failed to persist local storage",
                path=str(self.path),
                error=str(e),
                event_type="storage_write_failed",
            )
            raise

    def get(self, key: str) -> str | None:
        """Return the stored value or None."""
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        """Store a single value.

        Raises:
            ValueError: If key is empty
            OSError: If the file cannot be written
        """
        self.set_many({key: value})

    def set_many(self, values: Mapping[str, str]) -> None:
        """Store several values in one atomic write."""
        for key in values:
            if not key:
                raise ValueError("Storage key must not be empty")
        data = dict(self._data)
        data.update({k: str(v) for k, v in values.items()})
        self._commit(data)

    def remove(self, *keys: str) -> None:
        """Remove keys in one atomic write. Missing keys are ignored."""
        if not any(key in self._data for key in keys):
            return
        data = {k: v for k, v in self._data.items() if k not in keys}
        self._commit(data)

    def snapshot(self) -> dict[str, str]:
        """Copy of all stored values."""
        return dict(self._data)
