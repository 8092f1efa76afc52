"""
Expense Insights - Source Package

A small personal-finance tracker: signed-in users record expenses and
see their total spend, the number of days they spent money on, and a
stacked chart of daily spend by category.

DESIGN PRINCIPLES:
1. Aggregation is deterministic and works on a fetched snapshot
2. Day boundaries are always UTC
3. One bad record never breaks a whole summary
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Insights Team"
