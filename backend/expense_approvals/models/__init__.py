from sqlmodel import SQLModel

from expense_approvals.models.assignment import ManagerAssignment
from expense_approvals.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from expense_approvals.models.enums import DecisionAction, ExpenseStatus, Role
from expense_approvals.models.expense import Expense
from expense_approvals.models.receipt import Receipt
from expense_approvals.models.rule import ApprovalRule
from expense_approvals.models.user import User

__all__ = [
    "ApprovalRule",
    "DecisionAction",
    "Expense",
    "ExpenseStatus",
    "ManagerAssignment",
    "Receipt",
    "Role",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "UpdatedAtMixin",
    "User",
]
