"""
wiki_elastic.report — Tabular views of indexing runs and outcomes (pandas).
"""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from wiki_elastic.outcome import Outcome, OutcomeStatus

METRICS_COLUMNS = [
    "run_id", "index_name", "run_start", "run_end", "duration_seconds",
    "docs_submitted", "docs_created", "docs_updated", "docs_failed",
    "docs_skipped", "docs_aborted", "bulk_requests", "bulk_items_rejected",
    "rejection_rate_pct", "abort_rate_pct", "docs_per_second", "status",
]

OUTCOME_COLUMNS = ["status", "index", "doc_id", "submitted", "dropped", "error"]


def metrics_to_frame(runs: Iterable[dict]) -> pd.DataFrame:
    """One row per finished metrics dict, most recent run first."""
    df = pd.DataFrame(list(runs), columns=METRICS_COLUMNS)
    if df.empty:
        return df
    return df.sort_values("run_start", ascending=False).reset_index(drop=True)


def outcomes_to_frame(outcomes: Iterable[Outcome]) -> pd.DataFrame:
    return pd.DataFrame([o.as_row() for o in outcomes], columns=OUTCOME_COLUMNS)


def summarize_outcomes(outcomes: Iterable[Outcome]) -> pd.DataFrame:
    """
    Count outcomes per status.  Every status gets a row (zero when absent)
    so summaries of different runs line up.
    """
    df = outcomes_to_frame(outcomes)
    counts = df["status"].value_counts()
    statuses = [s.value for s in OutcomeStatus]
    summary = pd.DataFrame({
        "status": statuses,
        "count": [int(counts.get(s, 0)) for s in statuses],
    })
    return summary
