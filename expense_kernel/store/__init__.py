"""Record stores: contracts and the SQLAlchemy implementation."""

from expense_kernel.store.contract import DirectoryStore, ExpenseRecordStore
from expense_kernel.store.sql import SqlDirectoryStore, SqlExpenseRecordStore

__all__ = [
    "ExpenseRecordStore",
    "DirectoryStore",
    "SqlExpenseRecordStore",
    "SqlDirectoryStore",
]
