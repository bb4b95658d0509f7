"""
Expense Ledger - Source Package

A personal expense tracker built around a monthly ledger: expenses roll up
into monthly summaries, each month can carry an income/savings plan, and a
month can be closed into an immutable snapshot.

DESIGN PRINCIPLES:
1. A closed month never changes again
2. Open months always reflect live data
3. Fail early, fail visibly (validate before any write)
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Ledger Team"
