from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = structlog.get_logger()


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single upstream request.

    ``body`` is the raw response text and is only meaningful when ``success``
    is true. ``status_code`` is None when no HTTP response was received at all
    (DNS failure, refused connection, timeout).
    """

    body: str
    success: bool
    status_code: Optional[int] = None
    status_info: str = ""


class WeatherSource(Protocol):
    """One-shot weather snapshot provider.

    Implementations must not raise for upstream failures; they report them as
    a ``FetchResult`` with ``success=False`` and a human readable
    ``status_info``.
    """

    def fetch(self) -> FetchResult:
        ...


@dataclass
class OpenWeatherMapClient:
    """OpenWeatherMap current-weather implementation of `WeatherSource`.

    Notes and assumptions:
    - A single ``requests.Session`` is created lazily on first use and shared
      by every fetch (and every thread) until ``close()`` is called.
    - No retries: a failed request is reported once and the next cycle tries
      again.
    - Only the transport default timeouts apply.
    """

    base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    city: str = "London"
    api_key: Optional[str] = None
    timeout_connect: float = 5.0
    timeout_read: float = 30.0

    _session: Optional[requests.Session] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _get_session(self) -> requests.Session:
        if self._session is None:
            with self._lock:
                if self._session is None:
                    s = requests.Session()
                    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
                    s.mount("https://", adapter)
                    s.mount("http://", adapter)
                    self._session = s
                    logger.debug("weather_session_created", base_url=self.base_url)
        return self._session

    def close(self) -> None:
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None

    def fetch(self) -> FetchResult:
        params = {"q": self.city}
        if self.api_key:
            params["appid"] = self.api_key

        timeout = (self.timeout_connect, self.timeout_read)
        try:
            resp = self._get_session().get(self.base_url, params=params, timeout=timeout)
        except requests.RequestException as e:
            logger.warning("weather_request_error", city=self.city, error=str(e))
            return FetchResult(body="", success=False, status_code=None, status_info=str(e))

        status_info = f"{resp.status_code} {resp.reason or ''}".strip()
        if not resp.ok:
            return FetchResult(body="", success=False, status_code=resp.status_code, status_info=status_info)
        return FetchResult(body=resp.text, success=True, status_code=resp.status_code, status_info=status_info)
