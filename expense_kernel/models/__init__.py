"""ORM models for the expense kernel."""

from expense_kernel.models.approval_event import ApprovalEventModel
from expense_kernel.models.category import CategoryModel
from expense_kernel.models.expense import ExpenseModel
from expense_kernel.models.tenant import TenantModel
from expense_kernel.models.user import UserModel

__all__ = [
    "TenantModel",
    "UserModel",
    "CategoryModel",
    "ExpenseModel",
    "ApprovalEventModel",
]
