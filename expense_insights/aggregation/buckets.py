"""
Daily / Category Bucketizer

Groups records into a day x category grid for the stacked bar chart.

- Days are UTC calendar days (see `day_key`)
- Categories keep the order they were first seen in, so series
  colors stay stable as records are added
- Every cell is filled; the chart needs one value per day for every
  category
"""

from datetime import date
from decimal import Decimal
from typing import Iterable

from expense_insights.models.record import (
    ZERO,
    DailyCategoryMatrix,
    ExpenseRecord,
    day_key,
)


def sort_day_keys(days: Iterable[str]) -> list[str]:
    """Chronological order, compared as calendar dates."""
    return sorted(days, key=date.fromisoformat)


def bucketize_records(records: Iterable[ExpenseRecord]) -> DailyCategoryMatrix:
    """Sum amounts per (UTC day, category) into a dense matrix."""
    sparse: dict[str, dict[str, Decimal]] = {}
    categories: dict[str, None] = {}

    for record in records:
        categories.setdefault(record.category, None)
        cells = sparse.setdefault(record.day_key, {})
        cells[record.category] = cells.get(record.category, ZERO) + record.amount

    ordered_categories = list(categories)
    days = sort_day_keys(sparse)

    values = {
        day: {
            category: sparse[day].get(category, ZERO)
            for category in ordered_categories
        }
        for day in days
    }

    return DailyCategoryMatrix(
        days=days,
        categories=ordered_categories,
        values=values,
    )


__all__ = ["bucketize_records", "day_key", "sort_day_keys"]
