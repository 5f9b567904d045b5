"""
Expense Tracker - Source Package

A personal expense tracker: record expenses, browse and group them,
and look at daily and per-category reports that stay live while
the underlying records change.

DESIGN PRINCIPLES:
1. Reports are pure functions of a record snapshot
2. Storage layer is swappable (SQLite, Google Sheets, in-memory)
3. Every export ends in exactly one success or failure result
4. Store failures reach the screen that asked for the data
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
