"""HTTP transport: one request/response exchange per call.

A Transport owns the process-wide connection pools (one ``requests.Session``
per calling thread).
Create it once, share it between clients and jobs, and close it once when
all jobs are done.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from .exceptions import NetworkError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class ResponseBuffer:
    """Growable byte accumulator; capacity doubles when a write overflows it."""

    def __init__(self, capacity: int = 4096) -> None:
        self._data = bytearray(max(1, capacity))
        self._size = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    def write(self, chunk: bytes) -> int:
        needed = self._size + len(chunk)
        if needed > len(self._data):
            capacity = len(self._data)
            while capacity < needed:
                capacity *= 2
            self._data.extend(bytes(capacity - len(self._data)))
        self._data[self._size:needed] = chunk
        self._size = needed
        return len(chunk)

    def getvalue(self) -> bytes:
        return bytes(self._data[: self._size])

    def __len__(self) -> int:
        return self._size


@dataclass(frozen=True)
class Exchange:
    """Status code and body of one completed exchange."""

    status_code: int
    body: bytes
    url: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Transport:
    """Executes single HTTP exchanges over pooled sessions.

    ``requests.Session`` is not guaranteed to be thread-safe, so each thread
    that uses the transport gets its own session, created on first use and
    closed by ``close()``. A session passed in explicitly is used as is by
    every thread.
    """

    def __init__(self, session: Optional[requests.Session] = None, pool_size: int = 10):
        self._shared = session
        self.pool_size = pool_size
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()
        self._closed = False

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=self.pool_size, pool_maxsize=self.pool_size)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    @property
    def session(self) -> requests.Session:
        """The session used by the calling thread."""
        if self._shared is not None:
            return self._shared
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._new_session()
            with self._lock:
                if self._closed:
                    session.close()
                    raise NetworkError("Transport is closed")
                self._sessions.append(session)
            self._local.session = session
        return session

    @property
    def closed(self) -> bool:
        return self._closed

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        params: Optional[Mapping[str, Any]] = None,
        json_payload: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Exchange:
        """Perform one exchange and return its status code and full body.

        Raises:
          NetworkError: If the exchange cannot complete.
        """
        if self._closed:
            raise NetworkError("Transport is closed")
        logger.debug("%s %s (timeout=%ss)", method, url, timeout)
        try:
            with self.session.request(
                method,
                url,
                params=params,
                json=json_payload,
                headers=headers,
                timeout=timeout,
                stream=True,
            ) as response:
                buffer = ResponseBuffer()
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        buffer.write(chunk)
                return Exchange(
                    status_code=response.status_code,
                    body=buffer.getvalue(),
                    url=getattr(response, "url", None) or url,
                )
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"{method} {url} failed: {str(e)}") from e

    def get(self, url: str, *, timeout: float, params: Optional[Mapping[str, Any]] = None) -> Exchange:
        return self.request("GET", url, timeout=timeout, params=params, headers={"Accept": "application/json"})

    def get_binary(self, url: str, *, timeout: float, params: Optional[Mapping[str, Any]] = None) -> Exchange:
        return self.request(
            "GET", url, timeout=timeout, params=params, headers={"Accept": "application/octet-stream"}
        )

    def post_json(self, url: str, payload: Any, *, timeout: float) -> Exchange:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        return self.request("POST", url, timeout=timeout, json_payload=payload, headers=headers)

    def close(self) -> None:
        """Close every session opened through this transport."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            sessions = [self._shared] if self._shared is not None else list(self._sessions)
            self._sessions.clear()
        for session in sessions:
            try:
                session.close()
            except (AttributeError, RuntimeError):
                pass

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_transport(pool_size: int = 10) -> Transport:
    """Create the process-wide transport. Pair with ``Transport.close()``."""
    return Transport(pool_size=pool_size)
