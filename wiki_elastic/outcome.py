"""
wiki_elastic.outcome — Result values returned by the dispatcher.

Every dispatcher call answers with an ``Outcome`` instead of raising, so a
caller can tell a skipped document from a remote failure from a missing index.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class OutcomeStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SUBMITTED = "submitted"
    ACKNOWLEDGED = "acknowledged"
    UNACKNOWLEDGED = "unacknowledged"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    ABORTED = "aborted"
    FAILED = "failed"


_OK_STATUSES = {
    OutcomeStatus.CREATED,
    OutcomeStatus.UPDATED,
    OutcomeStatus.SUBMITTED,
    OutcomeStatus.ACKNOWLEDGED,
}


@dataclass(frozen=True)
class Outcome:
    status: OutcomeStatus
    index: Optional[str] = None
    doc_id: Optional[str] = None
    error: Optional[BaseException] = None
    response: Optional[dict] = None
    submitted: int = 0
    dropped: int = 0

    @property
    def ok(self) -> bool:
        return self.status in _OK_STATUSES

    @property
    def acknowledged(self) -> bool:
        return self.status is OutcomeStatus.ACKNOWLEDGED

    def as_row(self) -> dict[str, Any]:
        """Flat dict used by ``wiki_elastic.report``."""
        return {
            "status": self.status.value,
            "index": self.index,
            "doc_id": self.doc_id,
            "submitted": self.submitted,
            "dropped": self.dropped,
            "error": str(self.error) if self.error is not None else None,
        }


def skipped(index: Optional[str] = None, doc_id: Optional[str] = None) -> Outcome:
    return Outcome(OutcomeStatus.SKIPPED, index=index, doc_id=doc_id)


def aborted(index: Optional[str] = None, doc_id: Optional[str] = None) -> Outcome:
    return Outcome(OutcomeStatus.ABORTED, index=index, doc_id=doc_id)


def failed(error: BaseException, index: Optional[str] = None, doc_id: Optional[str] = None) -> Outcome:
    return Outcome(OutcomeStatus.FAILED, index=index, doc_id=doc_id, error=error)


def from_write_response(response: dict) -> Outcome:
    """Classify an index (create-or-update) response body."""
    status = OutcomeStatus.CREATED if response.get("result") == "created" else OutcomeStatus.UPDATED
    return Outcome(
        status,
        index=response.get("_index"),
        doc_id=response.get("_id"),
        response=response,
    )


def from_ack_response(response: dict, index: Optional[str] = None) -> Outcome:
    status = OutcomeStatus.ACKNOWLEDGED if response.get("acknowledged") else OutcomeStatus.UNACKNOWLEDGED
    return Outcome(status, index=index or response.get("index"), response=response)
