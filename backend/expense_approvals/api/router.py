from fastapi import APIRouter

from expense_approvals.api.admin import admin_expenses_router
from expense_approvals.api.expenses import expenses_router
from expense_approvals.api.rules import rules_router
from expense_approvals.api.users import users_router

api_router = APIRouter()
api_router.include_router(expenses_router)
api_router.include_router(admin_expenses_router)
api_router.include_router(rules_router)
api_router.include_router(users_router)
