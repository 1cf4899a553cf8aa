"""Votes cast from this device."""
import json
import logging
from typing import List

logger = logging.getLogger(__name__)


class LocalVoteSet:
    """
    Ids of the events the current device has voted for.

    Kept in the device-local store only; the shared collection never sees
    it. One set per device, whoever is using it.
    """

    VOTES_KEY = 'myVotes'

    def __init__(self, backend, key: str = VOTES_KEY):
        """
        Args:
            backend: Local key/value store with get(key) and set(key, value)
            key: Key the id list is stored under
        """
        self.backend = backend
        self.key = key
        self._ids: List[str] = []

    def load(self) -> None:
        """Replace the in-memory set with the stored one; empty if unreadable."""
        try:
            saved = self.backend.get(self.key)
            ids = json.loads(saved) if saved else []
            if not isinstance(ids, list):
                raise ValueError("Expected a JSON list of event ids")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read local votes: {e}")
            ids = []

        self._ids = list(dict.fromkeys(str(event_id) for event_id in ids))
        logger.info(f"Loaded {len(self._ids)} local votes")

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._ids

    def __iter__(self):
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, event_id: str) -> bool:
        """Record a vote and persist the set."""
        if event_id in self._ids:
            return True
        return self._save(self._ids + [event_id])

    def discard(self, event_id: str) -> bool:
        """Forget a vote and persist the set."""
        if event_id not in self._ids:
            return True
        return self._save([i for i in self._ids if i != event_id])

    def _save(self, ids: List[str]) -> bool:
        try:
            self.backend.set(self.key, json.dumps(ids))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save local votes: {e}", exc_info=True)
            return False

        self._ids = ids
        return True
