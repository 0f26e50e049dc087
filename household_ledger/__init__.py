"""
Household Ledger - Core Package

Records household money movements (expenses, income, transfers between
accounts, credit-card usage and settlement, opening balances and
carry-overs) and derives filtered totals over date ranges.

DESIGN PRINCIPLES:
1. Sign is derived from kind, never stored
2. A transfer is always two linked records, never one
3. Totals are recomputed on read, never cached
4. Unresolvable references degrade to absent, never crash
5. The store is the only owner of mutable state
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
