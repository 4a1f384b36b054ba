"""
Shared HTTP helper for the feed adapters and the solar provider.

Every outbound call goes through ``TimedRequest`` so that timeouts, headers
and cancellation are handled in one place instead of per call site.
"""

import logging
import threading
from typing import Any, Dict, Optional, Tuple, Union

import requests

logger = logging.getLogger(__name__)

USER_AGENT = 'dx-cluster/1.0'
DEFAULT_HEADERS = {'User-Agent': USER_AGENT}

# Connect timeout is capped; the full timeout still applies to the read
MAX_CONNECT_TIMEOUT = 5.0


class TimedRequest:
    """A single cancellable GET with a bounded timeout.

    ``get_text()`` and ``get_json()`` return ``None`` on any failure:
    connection errors, timeouts, non-2xx responses, undecodable bodies, or a
    cancellation that happened before or during the request.
    """

    def __init__(self, url: str, timeout: float = 10.0,
                 headers: Optional[Dict[str, str]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.headers = dict(DEFAULT_HEADERS)
        if headers:
            self.headers.update(headers)
        self.cancel_event = cancel_event or threading.Event()
        self._session = session
        self.last_error: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self):
        """Abandon the request; any response that arrives later is discarded."""
        self.cancel_event.set()

    def _timeouts(self) -> Tuple[float, float]:
        return (min(MAX_CONNECT_TIMEOUT, self.timeout), self.timeout)

    def _fetch(self) -> Optional[requests.Response]:
        if self.cancelled:
            self.last_error = 'cancelled'
            return None

        session = self._session or requests.Session()
        try:
            response = session.get(self.url, headers=self.headers, timeout=self._timeouts())
            response.raise_for_status()
        except requests.Timeout:
            self.last_error = f'timeout after {self.timeout}s'
            logger.debug(f"Request to {self.url} timed out")
            return None
        except requests.RequestException as e:
            self.last_error = str(e)
            logger.debug(f"Request to {self.url} failed: {e}")
            return None
        finally:
            if self._session is None:
                session.close()

        if self.cancelled:
            self.last_error = 'cancelled'
            return None
        return response

    def get_text(self) -> Optional[str]:
        response = self._fetch()
        if response is None:
            return None
        return response.text

    def get_json(self) -> Optional[Union[Dict[str, Any], list]]:
        response = self._fetch()
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            self.last_error = f'invalid JSON: {e}'
            logger.debug(f"Invalid JSON from {self.url}: {e}")
            return None
