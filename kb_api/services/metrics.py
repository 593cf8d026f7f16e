from __future__ import annotations

from prometheus_client import Counter


BATCH_ITEMS_COUNTER = Counter(
    "kb_batch_items_total",
    "Documents processed by batch actions",
    ["action", "outcome"],
)

DRAFTS_CREATED_COUNTER = Counter(
    "kb_drafts_created_total",
    "Draft documents created by the drafting service",
)

SUMMARIES_GENERATED_COUNTER = Counter(
    "kb_summaries_generated_total",
    "AI summaries written to documents",
    ["outcome"],
)


def record_batch_item(action: str, succeeded: bool) -> None:
    BATCH_ITEMS_COUNTER.labels(action=action, outcome="success" if succeeded else "failed").inc()


def record_draft_created() -> None:
    DRAFTS_CREATED_COUNTER.inc()


def record_summary_generated(fallback: bool) -> None:
    SUMMARIES_GENERATED_COUNTER.labels(outcome="fallback" if fallback else "generated").inc()
