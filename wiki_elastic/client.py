"""
wiki_elastic.client — Thin HTTP client for the Elasticsearch REST API.

Synchronous calls return the decoded JSON body or raise ``ElasticError``.
Asynchronous calls run on the client's own I/O thread pool and report back
through a listener's ``on_response`` / ``on_failure``, called exactly once
from one of those threads.
"""

from __future__ import annotations

import json
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Optional
from urllib.parse import quote

import requests

from wiki_elastic.errors import ElasticsearchError, TransportError
from wiki_elastic.log import get_logger
from wiki_elastic.throttle import (
    BULK_HEADERS,
    DEFAULT_ELASTIC_URL,
    IO_THREADS,
    REQUEST_HEADERS,
    REQUEST_TIMEOUT,
)

logger = get_logger(__name__)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def build_bulk_body(actions: Iterable[tuple[str, str, str, str]]) -> str:
    """
    NDJSON body for ``POST /_bulk`` from ``(index, type, id, source_json)``
    tuples: one action line plus one source line per document, newline
    terminated.
    """
    lines = []
    for index_name, index_type, doc_id, source in actions:
        meta = {"index": {"_index": index_name, "_type": index_type, "_id": doc_id}}
        lines.append(json.dumps(meta))
        lines.append(source)
    return "\n".join(lines) + "\n" if lines else ""


def _error_from_response(resp: requests.Response) -> ElasticsearchError:
    error_type = None
    reason = resp.reason
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            error_type = err.get("type")
            reason = err.get("reason", reason)
        elif isinstance(err, str):
            reason = err
    return ElasticsearchError(resp.status_code, error_type, reason)


class ElasticClient:
    """REST calls used by the dispatcher; one ``requests.Session`` per client."""

    def __init__(
        self,
        url: str = DEFAULT_ELASTIC_URL,
        timeout: float = REQUEST_TIMEOUT,
        io_threads: int = IO_THREADS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=io_threads, thread_name_prefix="elastic-io")

    # -- transport ---------------------------------------------------------

    def _request(self, method: str, path: str, data: Optional[str] = None, headers=None, allow_404: bool = False) -> dict:
        url = f"{self.url}/{path.lstrip('/')}"
        try:
            resp = self.session.request(
                method,
                url,
                data=data.encode("utf-8") if data is not None else None,
                headers=headers or REQUEST_HEADERS,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(f"timeout: {method} {url}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"connection_error: {method} {url}: {e}") from e

        if resp.status_code >= 400 and not (allow_404 and resp.status_code == 404):
            raise _error_from_response(resp)

        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"invalid JSON from {method} {url}") from e

    def _submit(self, call, listener) -> Future:
        def _run():
            try:
                response = call()
            except Exception as e:
                listener.on_failure(e)
            else:
                listener.on_response(response)

        return self._executor.submit(_run)

    # -- index administration ---------------------------------------------

    def create_index(self, index_name: str, body: dict) -> dict:
        return self._request("PUT", _segment(index_name), data=json.dumps(body))

    def delete_index(self, index_name: str) -> dict:
        return self._request("DELETE", _segment(index_name))

    def open_index(self, index_name: str) -> dict:
        return self._request("POST", f"{_segment(index_name)}/_open")

    # -- documents ---------------------------------------------------------

    def get(self, index_name: str, index_type: str, doc_id: str) -> dict:
        """A missing document is a 404 carrying ``"found": false``, not an error."""
        path = f"{_segment(index_name)}/{_segment(index_type)}/{_segment(doc_id)}"
        body = self._request("GET", path, allow_404=True)
        if "found" not in body:
            # missing index: 404 with an error object instead of "found"
            err = body.get("error")
            error_type = err.get("type") if isinstance(err, dict) else None
            raise ElasticsearchError(404, error_type, f"no such index [{index_name}]")
        return body

    def index(self, index_name: str, index_type: str, doc_id: str, source: str) -> dict:
        path = f"{_segment(index_name)}/{_segment(index_type)}/{_segment(doc_id)}"
        return self._request("PUT", path, data=source)

    def bulk(self, body: str) -> dict:
        return self._request("POST", "_bulk", data=body, headers=BULK_HEADERS)

    def index_async(self, index_name: str, index_type: str, doc_id: str, source: str, listener) -> Future:
        return self._submit(lambda: self.index(index_name, index_type, doc_id, source), listener)

    def bulk_async(self, body: str, listener) -> Future:
        return self._submit(lambda: self.bulk(body), listener)

    def close(self) -> None:
        """Wait for in-flight async calls, then drop the HTTP session."""
        self._executor.shutdown(wait=True)
        self.session.close()

    def __enter__(self) -> "ElasticClient":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False
