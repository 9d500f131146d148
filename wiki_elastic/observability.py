"""
wiki_elastic.observability — Indexing-run metrics and alert evaluation.

Threshold Rationale
-------------------
REJECTION_RATE_WARNING  (10 %) — A healthy load loses almost no pages;
    10 % points at mapping conflicts or an overloaded cluster.
REJECTION_RATE_CRITICAL (25 %) — A quarter of the dump missing makes the
    index unusable for search.
ABORT_RATE_WARNING       (5 %) — Pages dropped because no permit freed up in
    time: callers outpace the cluster, or completions are going missing.
BULK_REJECTED_ITEMS_MAX   (0)  — The engine refusing individual bulk items is
    always a mapping/document problem worth a look.
THROUGHPUT_DROP_FACTOR  (2.0)  — Half the usual docs/s filters noise while
    catching a slow or degraded cluster.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from wiki_elastic.outcome import OutcomeStatus

REJECTION_RATE_WARNING = 10.0
REJECTION_RATE_CRITICAL = 25.0
ABORT_RATE_WARNING = 5.0
BULK_REJECTED_ITEMS_MAX = 0
EMPTY_RESULT_MIN_DOCS = 1
THROUGHPUT_DROP_FACTOR = 2.0

# Which metrics counter a document outcome lands in
OUTCOME_COUNTERS = {
    OutcomeStatus.CREATED: "docs_created",
    OutcomeStatus.UPDATED: "docs_updated",
    OutcomeStatus.FAILED: "docs_failed",
    OutcomeStatus.SKIPPED: "docs_skipped",
    OutcomeStatus.ABORTED: "docs_aborted",
}


def start_indexing_run(index_name: str) -> dict:
    """Begin a new indexing run.  Returns a metrics dict the dispatcher fills in."""
    return {
        "run_id": str(uuid.uuid4()),
        "run_start": datetime.now(timezone.utc),
        "run_end": None,
        "duration_seconds": None,
        "index_name": index_name,
        "docs_submitted": 0,
        "docs_created": 0,
        "docs_updated": 0,
        "docs_failed": 0,
        "docs_skipped": 0,
        "docs_aborted": 0,
        "bulk_requests": 0,
        "bulk_items_rejected": 0,
        "rejection_rate_pct": None,
        "abort_rate_pct": None,
        "docs_per_second": None,
        "status": "running",
        "error_message": None,
    }


def _pct(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0


def finish_indexing_run(metrics: dict) -> dict:
    """Stamp the end time and derive rejection rate, abort rate and throughput."""
    metrics["run_end"] = datetime.now(timezone.utc)
    elapsed = (metrics["run_end"] - metrics["run_start"]).total_seconds()
    metrics["duration_seconds"] = round(elapsed, 2)

    written = metrics["docs_created"] + metrics["docs_updated"]
    failed = metrics["docs_failed"]
    aborted = metrics["docs_aborted"]

    # a page either reached the engine (written / failed) or never got a permit
    metrics["rejection_rate_pct"] = _pct(failed, written + failed)
    metrics["abort_rate_pct"] = _pct(aborted, written + failed + aborted)
    metrics["docs_per_second"] = round(written / elapsed, 2) if elapsed > 0 else None

    if metrics["status"] == "running":
        metrics["status"] = "completed"

    return metrics


def _alert(metrics: dict, severity: str, condition: str, message: str, metric_value, threshold) -> dict:
    return {
        "alert_id": str(uuid.uuid4()),
        "run_id": metrics["run_id"],
        "index_name": metrics["index_name"],
        "created_at": datetime.now(timezone.utc),
        "severity": severity,
        "condition_name": condition,
        "message": f"[{metrics['index_name']}] {message}",
        "metric_value": metric_value,
        "threshold": threshold,
    }


def evaluate_alerts(metrics: dict, historical_docs_per_second: Optional[float] = None) -> list[dict]:
    """
    Check a finished metrics dict.  Conditions: pages rejected by the engine,
    pages aborted for lack of a permit, bulk items refused, nothing written,
    throughput collapse against ``historical_docs_per_second``.
    """
    alerts: list[dict] = []

    rejection = metrics.get("rejection_rate_pct") or 0.0
    if rejection >= REJECTION_RATE_CRITICAL:
        alerts.append(_alert(
            metrics, "CRITICAL", "rejection_rate_critical",
            f"{metrics['docs_failed']} page(s) failed to index "
            f"({rejection:.1f}% >= {REJECTION_RATE_CRITICAL}%)",
            rejection, REJECTION_RATE_CRITICAL,
        ))
    elif rejection >= REJECTION_RATE_WARNING:
        alerts.append(_alert(
            metrics, "WARNING", "rejection_rate_warning",
            f"{metrics['docs_failed']} page(s) failed to index "
            f"({rejection:.1f}% >= {REJECTION_RATE_WARNING}%)",
            rejection, REJECTION_RATE_WARNING,
        ))

    abort_rate = metrics.get("abort_rate_pct") or 0.0
    if abort_rate >= ABORT_RATE_WARNING:
        alerts.append(_alert(
            metrics, "WARNING", "permit_starvation",
            f"{metrics['docs_aborted']} page(s) dropped waiting for a permit "
            f"({abort_rate:.1f}%); raise ELASTIC_ACQUIRE_TIMEOUT or check for lost completions",
            abort_rate, ABORT_RATE_WARNING,
        ))

    rejected_items = metrics.get("bulk_items_rejected", 0)
    if rejected_items > BULK_REJECTED_ITEMS_MAX:
        alerts.append(_alert(
            metrics, "WARNING", "bulk_items_rejected",
            f"Engine refused {rejected_items} item(s) across {metrics['bulk_requests']} bulk request(s)",
            float(rejected_items), float(BULK_REJECTED_ITEMS_MAX),
        ))

    written = metrics["docs_created"] + metrics["docs_updated"]
    if written < EMPTY_RESULT_MIN_DOCS:
        alerts.append(_alert(
            metrics, "CRITICAL", "nothing_indexed",
            f"No page was created or updated ({metrics['docs_skipped']} skipped as invalid)",
            float(written), float(EMPTY_RESULT_MIN_DOCS),
        ))

    rate = metrics.get("docs_per_second")
    if rate is not None and historical_docs_per_second:
        floor = historical_docs_per_second / THROUGHPUT_DROP_FACTOR
        if rate <= floor:
            alerts.append(_alert(
                metrics, "WARNING", "throughput_drop",
                f"Indexed {rate:.1f} docs/s against a usual {historical_docs_per_second:.1f} docs/s",
                rate, floor,
            ))

    return alerts
