import json
from typing import Any, Optional

import pytest

from cardart.core.client.config import ComfyConfig
from cardart.core.client.transport import Exchange


def json_exchange(data: Any, status_code: int = 200, url: str = "") -> Exchange:
    return Exchange(status_code=status_code, body=json.dumps(data).encode("utf-8"), url=url)


def history_success(job_id: str, filename: Optional[str] = "out.png", **image_fields: str) -> dict:
    outputs: dict = {"3": {"latent": []}}
    if filename is not None:
        outputs["9"] = {"images": [dict({"filename": filename}, **image_fields)]}
    return {job_id: {"status": {"status_str": "success", "completed": True}, "outputs": outputs}}


class FakeTransport:
    """Scripted stand-in for Transport: each call pops the next queued item."""

    def __init__(self, posts=(), gets=(), binaries=()):
        self.posts = list(posts)
        self.gets = list(gets)
        self.binaries = list(binaries)
        self.calls: list[tuple[str, str]] = []
        self.payloads: list[Any] = []
        self.closed = False

    def _next(self, queue: list, method: str, url: str) -> Exchange:
        self.calls.append((method, url))
        if not queue:
            raise AssertionError(f"unexpected {method} {url}")
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post_json(self, url, payload, *, timeout):
        self.payloads.append(payload)
        return self._next(self.posts, "POST", url)

    def get(self, url, *, timeout, params=None):
        return self._next(self.gets, "GET", url)

    def get_binary(self, url, *, timeout, params=None):
        return self._next(self.binaries, "GET_BINARY", url)

    def close(self):
        self.closed = True

    def urls(self, fragment: str) -> list[str]:
        return [url for _method, url in self.calls if fragment in url]


@pytest.fixture
def config() -> ComfyConfig:
    return ComfyConfig(host="localhost", port=8188, poll_interval=0, max_poll_attempts=3)
