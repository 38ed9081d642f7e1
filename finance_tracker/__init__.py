"""
Finance Tracker - Client Data Layer

The data layer behind a personal finance tracker. It keeps locally held
expenses, incomes and categories consistent with a remote authoritative
store, and keeps the application shell usable while offline.

DESIGN PRINCIPLES:
1. The remote store is authoritative - local state changes only after it confirms
2. Fail early, fail visibly - every failure is a typed error, never a console line
3. Derived views are recomputed, never cached
4. Live financial data is never served from the offline cache
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
