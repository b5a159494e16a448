# tests/conftest.py

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from africa_payments.events import EventEmitter
from africa_payments.providers.http import HttpClient


class RecordingTransport:
    """
    Canned upstream for providers built on HttpClient.

    Routes are matched on (method, path suffix). Each route holds a queue of
    responses; the last one repeats once the queue is drained. Every request
    is kept in `requests` so tests can assert paths, headers and payloads.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._routes: Dict[Tuple[str, str], List[Tuple[int, Any]]] = {}

    def add(self, method: str, path_suffix: str, payload: Any = None, status: int = 200) -> "RecordingTransport":
        self._routes.setdefault((method.upper(), path_suffix), []).append((status, payload))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for (method, suffix), queue in self._routes.items():
            if request.method == method and request.url.path.endswith(suffix):
                status, payload = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(payload, (bytes, str)):
                    return httpx.Response(status, content=payload)
                return httpx.Response(status, json=payload)
        raise AssertionError(f"unexpected request {request.method} {request.url}")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> HttpClient:
        return HttpClient(transport=self.transport)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def calls(self, path_suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path_suffix)]

    def json_of(self, path_suffix: str, index: int = 0) -> Optional[Dict[str, Any]]:
        body = self.calls(path_suffix)[index].content
        return json.loads(body) if body else None


@pytest.fixture
def recorder() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def events():
    """An EventEmitter sink plus the list of events it received."""
    sink = EventEmitter()
    received: list = []
    sink.on_all(received.append)
    return sink, received
