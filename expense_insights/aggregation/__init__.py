"""Expense aggregation package."""

from expense_insights.aggregation.buckets import (
    bucketize_records,
    day_key,
    sort_day_keys,
)
from expense_insights.aggregation.summary import (
    SummaryAggregator,
    count_days_with_spend,
    summarize_records,
)

__all__ = [
    "SummaryAggregator",
    "bucketize_records",
    "count_days_with_spend",
    "day_key",
    "sort_day_keys",
    "summarize_records",
]
