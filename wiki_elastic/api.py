"""
wiki_elastic.api — Permit-gated dispatcher in front of ``ElasticClient``.

Every remote call first takes a permit from a fair ``PermitPool`` (10 by
default), so at most that many requests are in flight however many caller
threads push pages.  Synchronous calls give the permit back before
returning; asynchronous writes hand it to a ``PermitReleasingListener``
that gives it back on the client's I/O thread once the write completes.

No call raises for remote trouble: results come back as ``Outcome`` values
(or plain booleans for the lookups).
"""

from __future__ import annotations

import threading
from functools import partial
from typing import Iterable, Optional

from wiki_elastic import outcome as oc
from wiki_elastic.client import ElasticClient, build_bulk_body
from wiki_elastic.config import ElasticSettings, IndexConfiguration
from wiki_elastic.errors import ElasticError, ElasticsearchError
from wiki_elastic.listener import (
    ActionListener,
    BulkCreateListener,
    DocCreateListener,
    PermitReleasingListener,
)
from wiki_elastic.log import get_logger
from wiki_elastic.models import WikiPage, is_valid_request
from wiki_elastic.observability import OUTCOME_COUNTERS
from wiki_elastic.outcome import Outcome, OutcomeStatus
from wiki_elastic.permits import PermitLease, PermitPool
from wiki_elastic.throttle import MAX_AVAILABLE

logger = get_logger(__name__)


class ElasticAPI:

    def __init__(
        self,
        client: ElasticClient,
        max_available: int = MAX_AVAILABLE,
        acquire_timeout: Optional[float] = None,
        lease_timeout: Optional[float] = None,
        metrics: Optional[dict] = None,
    ) -> None:
        self.client = client
        self.permits = PermitPool(max_available)
        self.acquire_timeout = acquire_timeout
        self.lease_timeout = lease_timeout
        self.metrics = metrics
        self._metrics_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: ElasticSettings, metrics: Optional[dict] = None) -> "ElasticAPI":
        client = ElasticClient(
            settings.url,
            timeout=settings.request_timeout,
            io_threads=settings.io_threads,
        )
        return cls(
            client,
            max_available=settings.max_available,
            acquire_timeout=settings.acquire_timeout,
            lease_timeout=settings.lease_timeout,
            metrics=metrics,
        )

    # -- bookkeeping ---------------------------------------------------------

    def _count(self, key: str, n: int = 1) -> None:
        if self.metrics is None or n == 0:
            return
        with self._metrics_lock:
            self.metrics[key] = self.metrics.get(key, 0) + n

    def _record(self, status: OutcomeStatus, n: int = 1) -> None:
        key = OUTCOME_COUNTERS.get(status)
        if key is not None:
            self._count(key, n)

    def _lease(self, label: str, watchdog: bool = False) -> Optional[PermitLease]:
        lease = self.permits.lease(
            timeout=self.acquire_timeout,
            lease_timeout=self.lease_timeout if watchdog else None,
            label=label,
        )
        if lease is None:
            logger.warning("Gave up waiting %.1fs for a permit for %s", self.acquire_timeout, label)
        return lease

    # -- index administration -------------------------------------------------

    def delete_index(self, index_name: str) -> Outcome:
        if not index_name:
            logger.warning("Refusing to delete an index with an empty name")
            return oc.skipped(index=index_name)

        lease = self._lease(f"delete {index_name}")
        if lease is None:
            return oc.aborted(index=index_name)

        with lease:
            try:
                response = self.client.delete_index(index_name)
            except ElasticsearchError as e:
                if e.is_not_found:
                    logger.info("Index %s not found", index_name)
                    return Outcome(OutcomeStatus.NOT_FOUND, index=index_name, error=e)
                logger.error("Deleting index %s failed: %s", index_name, e)
                return oc.failed(e, index=index_name)
            except ElasticError as e:
                logger.error("Deleting index %s failed: %s", index_name, e)
                return oc.failed(e, index=index_name)

        result = oc.from_ack_response(response, index=index_name)
        logger.info("Index %s deleted successfully: %s", index_name, result.acknowledged)
        return result

    def create_index(self, configuration: IndexConfiguration) -> Outcome:
        index_name = configuration.index_name
        if not index_name:
            logger.warning("Refusing to create an index with an empty name")
            return oc.skipped(index=index_name)

        try:
            body = configuration.to_request_body()
        except ValueError as e:
            logger.error("Settings/mapping for index %s are unusable: %s", index_name, e)
            return oc.failed(e, index=index_name)

        lease = self._lease(f"create {index_name}")
        if lease is None:
            return oc.aborted(index=index_name)

        with lease:
            try:
                response = self.client.create_index(index_name, body)
            except ElasticError as e:
                logger.error("Creating index %s failed: %s", index_name, e)
                return oc.failed(e, index=index_name)

        result = oc.from_ack_response(response, index=index_name)
        logger.info("Index %s created successfully: %s", index_name, result.acknowledged)
        return result

    def index_exists(self, index_name: str) -> bool:
        """True when the index can be opened (``POST /{index}/_open`` acknowledged)."""
        if not index_name:
            return False

        lease = self._lease(f"open {index_name}")
        if lease is None:
            return False

        with lease:
            try:
                response = self.client.open_index(index_name)
            except ElasticError as e:
                logger.debug("Index %s cannot be opened: %s", index_name, e)
                return False
        return bool(response.get("acknowledged"))

    # -- documents -------------------------------------------------------------

    def exists(self, index_name: str, index_type: str, doc_id) -> bool:
        if not index_name or not index_type or doc_id is None or str(doc_id) == "":
            logger.debug("Skipping lookup with empty index/type/id: %s/%s/%s", index_name, index_type, doc_id)
            return False

        lease = self._lease(f"{index_name}/{doc_id}")
        if lease is None:
            return False

        with lease:
            try:
                response = self.client.get(index_name, index_type, str(doc_id))
            except ElasticError as e:
                logger.error("Lookup of %s/%s/%s failed: %s", index_name, index_type, doc_id, e)
                return False
        return bool(response.get("found"))

    def index_sync(self, index_name: str, index_type: str, page: Optional[WikiPage]) -> Outcome:
        """Write one page and wait for the engine's answer."""
        doc_id = page.doc_id if page is not None else None
        if not is_valid_request(index_name, index_type, page):
            logger.debug("Skipping invalid document id:%s for %s/%s", doc_id, index_name, index_type)
            self._record(OutcomeStatus.SKIPPED)
            return oc.skipped(index=index_name, doc_id=doc_id)

        try:
            source = page.to_json()
        except (TypeError, ValueError) as e:
            logger.error("Document id:%s is not serialisable: %s", doc_id, e)
            self._record(OutcomeStatus.FAILED)
            return oc.failed(e, index=index_name, doc_id=doc_id)

        lease = self._lease(f"{index_name}/{doc_id}")
        if lease is None:
            self._record(OutcomeStatus.ABORTED)
            return oc.aborted(index=index_name, doc_id=doc_id)

        self._count("docs_submitted")
        with lease:
            try:
                response = self.client.index(index_name, index_type, doc_id, source)
            except ElasticError as e:
                logger.error("failed inserting document id:%s: %s", doc_id, e)
                self._record(OutcomeStatus.FAILED)
                return oc.failed(e, index=index_name, doc_id=doc_id)

        result = oc.from_write_response(response)
        self._record(result.status)
        return result

    def index_async(
        self,
        index_name: str,
        index_type: str,
        page: Optional[WikiPage],
        listener: Optional[ActionListener] = None,
    ) -> Outcome:
        """
        Write one page without waiting for it.  Blocks only until a permit is
        free; ``listener`` (default ``DocCreateListener``) hears back later
        from an I/O thread, after the permit has been released.
        """
        doc_id = page.doc_id if page is not None else None
        if not is_valid_request(index_name, index_type, page):
            logger.debug("Skipping invalid document id:%s for %s/%s", doc_id, index_name, index_type)
            self._record(OutcomeStatus.SKIPPED)
            return oc.skipped(index=index_name, doc_id=doc_id)

        try:
            source = page.to_json()
        except (TypeError, ValueError) as e:
            logger.error("Document id:%s is not serialisable: %s", doc_id, e)
            self._record(OutcomeStatus.FAILED)
            return oc.failed(e, index=index_name, doc_id=doc_id)

        lease = self._lease(f"{index_name}/{doc_id}", watchdog=True)
        if lease is None:
            self._record(OutcomeStatus.ABORTED)
            return oc.aborted(index=index_name, doc_id=doc_id)

        completion = PermitReleasingListener(lease, listener or DocCreateListener(), on_done=self._doc_done)
        try:
            self.client.index_async(index_name, index_type, doc_id, source, completion)
        except RuntimeError as e:
            # executor already shut down: the completion will never run
            lease.release()
            logger.error("Cannot submit document id:%s: %s", doc_id, e)
            self._record(OutcomeStatus.FAILED)
            return oc.failed(e, index=index_name, doc_id=doc_id)

        self._count("docs_submitted")
        logger.debug("Doc with Id %s will be created asynchronously", doc_id)
        return Outcome(OutcomeStatus.SUBMITTED, index=index_name, doc_id=doc_id, submitted=1)

    def index_bulk_async(
        self,
        index_name: str,
        index_type: str,
        pages: Optional[Iterable[Optional[WikiPage]]],
        listener: Optional[ActionListener] = None,
    ) -> Outcome:
        """
        Write the valid pages of ``pages`` as one ``_bulk`` request under a
        single permit.  Invalid pages are dropped; only their number is
        reported (``Outcome.dropped``).  ``listener`` (default
        ``BulkCreateListener``) hears back once for the whole batch.
        """
        actions = []
        dropped = 0
        for page in pages or []:
            if not is_valid_request(index_name, index_type, page):
                dropped += 1
                continue
            try:
                actions.append((index_name, index_type, page.doc_id, page.to_json()))
            except (TypeError, ValueError) as e:
                logger.warning("Dropping document id:%s from bulk, not serialisable: %s", page.doc_id, e)
                dropped += 1

        if dropped:
            logger.debug("Dropped %d invalid document(s) from bulk for %s", dropped, index_name)
            self._record(OutcomeStatus.SKIPPED, dropped)
        if not actions:
            return Outcome(OutcomeStatus.SKIPPED, index=index_name, dropped=dropped)

        body = build_bulk_body(actions)
        lease = self._lease(f"bulk {index_name} ({len(actions)} docs)", watchdog=True)
        if lease is None:
            self._record(OutcomeStatus.ABORTED, len(actions))
            return Outcome(OutcomeStatus.ABORTED, index=index_name, dropped=dropped)

        completion = PermitReleasingListener(
            lease,
            listener or BulkCreateListener(),
            on_done=partial(self._bulk_done, len(actions)),
        )
        try:
            self.client.bulk_async(body, completion)
        except RuntimeError as e:
            lease.release()
            logger.error("Cannot submit bulk for %s: %s", index_name, e)
            self._record(OutcomeStatus.FAILED, len(actions))
            return Outcome(OutcomeStatus.FAILED, index=index_name, error=e, dropped=dropped)

        self._count("bulk_requests")
        self._count("docs_submitted", len(actions))
        logger.debug("Bulk insert of %d document(s) will be created asynchronously", len(actions))
        return Outcome(OutcomeStatus.SUBMITTED, index=index_name, submitted=len(actions), dropped=dropped)

    # -- completion bookkeeping (I/O threads) ----------------------------------

    def _doc_done(self, response: Optional[dict], error: Optional[Exception]) -> None:
        if error is not None:
            self._record(OutcomeStatus.FAILED)
        else:
            self._record(oc.from_write_response(response).status)

    def _bulk_done(self, size: int, response: Optional[dict], error: Optional[Exception]) -> None:
        if error is not None:
            self._record(OutcomeStatus.FAILED, size)
            return
        for item in response.get("items", []):
            action = item.get("index", {})
            if action.get("error") or action.get("status", 200) >= 300:
                self._record(OutcomeStatus.FAILED)
                self._count("bulk_items_rejected")
            else:
                self._record(oc.from_write_response(action).status)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ElasticAPI":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False
