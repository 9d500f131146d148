"""
tests/conftest.py — Shared fixtures: sample pages, mocked HTTP responses and
an instrumented in-memory store standing in for ``ElasticClient``.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from wiki_elastic.models import WikiPage

INDEX = "enwiki_v1"
DOC_TYPE = "wikipage"


def mock_http_response(json_body=None, status_code: int = 200, reason: str = "OK"):
    """Return a mock ``requests.Response`` carrying ``json_body``."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.reason = reason
    if json_body is None:
        resp.json.side_effect = ValueError("no JSON")
    else:
        resp.json.return_value = json_body
    return resp


def index_response(doc_id, result="created", index=INDEX):
    return {"_index": index, "_type": DOC_TYPE, "_id": str(doc_id), "_version": 1, "result": result}


def wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class RecordingListener:
    """Listener that remembers what it was told (and on which thread)."""

    def __init__(self):
        self.responses = []
        self.failures = []
        self.threads = []
        self.done = threading.Event()

    def on_response(self, response):
        self.threads.append(threading.current_thread().name)
        self.responses.append(response)
        self.done.set()

    def on_failure(self, error):
        self.threads.append(threading.current_thread().name)
        self.failures.append(error)
        self.done.set()


class FakeStoreClient:
    """
    Stand-in for ``ElasticClient``.  Async writes complete on their own
    threads once ``gate`` is set; ``in_flight`` / ``max_in_flight`` count
    writes that were submitted and have not completed yet.
    """

    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.gate = threading.Event()
        self.gate.set()
        self.lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.submitted = 0
        self.indexed = []
        self.bulk_bodies = []
        self.threads = []
        self.closed = False

    def _enter(self):
        with self.lock:
            self.submitted += 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

    def _exit(self):
        with self.lock:
            self.in_flight -= 1

    def _complete_later(self, result, listener):
        def _run():
            self.gate.wait(timeout=10)
            self._exit()
            if self.fail_with is not None:
                listener.on_failure(self.fail_with)
            else:
                listener.on_response(result)

        t = threading.Thread(target=_run, name="fake-io")
        self.threads.append(t)
        t.start()

    def index(self, index_name, index_type, doc_id, source):
        self._enter()
        try:
            if self.fail_with is not None:
                raise self.fail_with
            self.indexed.append((index_name, index_type, doc_id, source))
            return index_response(doc_id, index=index_name)
        finally:
            self._exit()

    def index_async(self, index_name, index_type, doc_id, source, listener):
        self._enter()
        self.indexed.append((index_name, index_type, doc_id, source))
        self._complete_later(index_response(doc_id, index=index_name), listener)

    def bulk_async(self, body, listener):
        self._enter()
        self.bulk_bodies.append(body)
        n_docs = body.count("\n") // 2
        items = [{"index": {"_id": str(i), "status": 201, "result": "created"}} for i in range(n_docs)]
        self._complete_later({"took": 3, "errors": False, "items": items}, listener)

    def join(self, timeout: float = 10.0):
        for t in list(self.threads):
            t.join(timeout)

    def close(self):
        self.closed = True


@pytest.fixture
def page():
    return WikiPage(id=12, title="Anarchism", text="Anarchism is a political philosophy ...")


@pytest.fixture
def pages():
    return [WikiPage(id=i, title=f"Page {i}", text=f"body {i}") for i in range(1, 6)]


@pytest.fixture
def fake_store():
    store = FakeStoreClient()
    yield store
    store.gate.set()
    store.join()


@pytest.fixture
def recording_listener():
    return RecordingListener()


@pytest.fixture
def mock_session():
    """A ``MagicMock`` standing in for ``requests.Session``."""
    return MagicMock(spec=requests.Session)
