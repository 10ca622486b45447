"""
Centralized Prometheus metrics.

All application metrics are defined here to prevent duplication
and ensure consistent labeling across modules.
"""

from prometheus_client import Counter, Histogram


# ── AI Oracle Metrics ─────────────────────────────────────────────────────────

oracle_call_count = Counter(
    "helpdesk_oracle_calls_total",
    "Total AI oracle calls",
    ["capability", "status"]
)

oracle_latency = Histogram(
    "helpdesk_oracle_latency_seconds",
    "AI oracle round-trip latency",
    ["capability"],
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)


# ── Complaint Lifecycle Metrics ───────────────────────────────────────────────

complaint_created_count = Counter(
    "helpdesk_complaints_created_total",
    "Complaints created",
    ["department", "priority"]
)

complaint_transition_count = Counter(
    "helpdesk_complaint_transitions_total",
    "Complaint status transitions",
    ["from_status", "to_status", "actor_role"]
)

enrichment_fallback_count = Counter(
    "helpdesk_enrichment_fallbacks_total",
    "Creation-time enrichments that fell back to a default value",
    ["field"]
)

batch_item_count = Counter(
    "helpdesk_batch_solution_items_total",
    "Batch solution drafting outcomes per complaint",
    ["department", "status"]
)


# ── Stage Metrics ─────────────────────────────────────────────────────────────

stage_latency = Histogram(
    "helpdesk_stage_seconds",
    "Per-stage latency within a multi-step operation",
    ["operation", "stage"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)
