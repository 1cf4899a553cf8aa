"""HTTP key/value store client."""
import logging
from typing import Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)


class HttpKeyValueStore:
    """
    Client for a remote key/value service.

    The service exposes one resource per key: GET returns the stored text
    (404 when absent) and PUT replaces it with the request body. Requests are
    not retried; a failed write is reported to the caller.
    """

    def __init__(self, base_url: str, timeout: int = 30):
        """
        Args:
            base_url: Service root, e.g. https://storage.example.com/kv
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

    def get(self, key: str, shared: bool = True) -> Optional[str]:
        """
        Fetch the text stored under a key.

        Returns:
            Stored text, or None if the service has no such key

        Raises:
            requests.RequestException: On network errors or non-2xx replies
        """
        response = self.session.get(
            self._url(key),
            params={'shared': self._flag(shared)},
            timeout=self.timeout
        )
        if response.status_code == 404:
            logger.info(f"Key '{key}' not found at {self.base_url}")
            return None

        response.raise_for_status()
        return response.content.decode('utf-8')

    def set(self, key: str, value: str, shared: bool = True) -> None:
        """
        Replace the text stored under a key.

        Raises:
            requests.RequestException: On network errors or non-2xx replies
        """
        response = self.session.put(
            self._url(key),
            params={'shared': self._flag(shared)},
            data=value.encode('utf-8'),
            headers={'Content-Type': 'text/plain; charset=utf-8'},
            timeout=self.timeout
        )
        response.raise_for_status()
        logger.info(f"Stored {len(value)} characters under '{key}'")

    def _url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key, safe='')}"

    @staticmethod
    def _flag(shared: bool) -> str:
        return 'true' if shared else 'false'
