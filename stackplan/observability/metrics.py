"""Prometheus metrics for planning and execution."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

plans_total = Counter(
    "stackplan_plans_total",
    "Plans built, by outcome (planned / rejected).",
    ["outcome"],
)

planning_duration_seconds = Histogram(
    "stackplan_planning_duration_seconds",
    "Wall-clock time spent building a plan.",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

plan_operations = Histogram(
    "stackplan_plan_operations",
    "Number of operations per emitted plan.",
    buckets=(1, 5, 10, 25, 50, 100, 250, 500),
)

operations_total = Counter(
    "stackplan_operations_total",
    "Provisioning operations executed, by operation type and status.",
    ["operation", "status"],
)

dependents_skipped_total = Counter(
    "stackplan_dependents_skipped_total",
    "Operations never issued because a prerequisite failed.",
)
