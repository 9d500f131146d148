"""
wiki_elastic.listener — Completion handlers for asynchronous writes.

``ElasticClient`` calls ``on_response`` or ``on_failure`` exactly once per
async request, from one of its I/O threads.  ``PermitReleasingListener`` is
the one place where the permit taken for that request is given back; it
then hands the result to the caller's listener.
"""

from __future__ import annotations

from typing import Callable, Optional

from wiki_elastic.log import get_logger
from wiki_elastic.permits import PermitLease

logger = get_logger(__name__)


class ActionListener:
    """Callback pair for one asynchronous request."""

    def on_response(self, response: dict) -> None:
        pass

    def on_failure(self, error: Exception) -> None:
        pass


class DocCreateListener(ActionListener):
    """Logs the result of a single-document write."""

    def on_response(self, response: dict) -> None:
        doc_id = response.get("_id")
        index = response.get("_index")
        result = response.get("result")
        if result == "created":
            logger.debug("document with id:%s Created successfully at index:%s", doc_id, index)
        elif result == "updated":
            logger.debug("document with id:%s Updated successfully at index:%s", doc_id, index)

    def on_failure(self, error: Exception) -> None:
        logger.error("failed inserting document: %s", error)


class BulkCreateListener(ActionListener):
    """Logs the aggregate result of a bulk write, plus any rejected items."""

    def on_response(self, response: dict) -> None:
        items = response.get("items", [])
        if response.get("errors"):
            for item in items:
                action = item.get("index", {})
                if action.get("error"):
                    logger.warning(
                        "bulk item id:%s rejected (status %s): %s",
                        action.get("_id"), action.get("status"), action.get("error"),
                    )
        logger.debug("Bulk of %d document(s) done in %sms", len(items), response.get("took"))

    def on_failure(self, error: Exception) -> None:
        logger.error("failed inserting bulk: %s", error)


class PermitReleasingListener(ActionListener):
    """
    Releases ``lease`` first, then reports to ``on_done`` (metrics) and the
    caller's ``delegate``.  The permit is released even if those raise.
    """

    def __init__(
        self,
        lease: PermitLease,
        delegate: ActionListener,
        on_done: Optional[Callable[[Optional[dict], Optional[Exception]], None]] = None,
    ) -> None:
        self.lease = lease
        self.delegate = delegate
        self.on_done = on_done

    def on_response(self, response: dict) -> None:
        self.lease.release()
        self._notify(response, None)

    def on_failure(self, error: Exception) -> None:
        self.lease.release()
        self._notify(None, error)

    def _notify(self, response: Optional[dict], error: Optional[Exception]) -> None:
        try:
            if self.on_done is not None:
                self.on_done(response, error)
            if error is None:
                self.delegate.on_response(response)
            else:
                self.delegate.on_failure(error)
        except Exception:
            logger.exception("Completion listener %s raised", type(self.delegate).__name__)
