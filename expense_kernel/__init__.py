"""
Expense Kernel - multi-tenant expense workflow engine.

An expense claim lifecycle with:
- Guarded status transitions (DRAFT -> SUBMITTED -> APPROVED -> REIMBURSED)
- Role and ownership authorization
- Append-only per-expense audit trail
- Strict tenant isolation on every read and write
- Optimistic concurrency via compare-and-swap saves
"""

__version__ = "0.1.0"
