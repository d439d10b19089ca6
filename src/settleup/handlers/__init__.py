from settleup.handlers.basic import basic_router, on_authorization_error
from settleup.handlers.expenses import expenses_router
from settleup.handlers.groups import groups_router
from settleup.handlers.settlements import settlements_router

__all__ = [
    "basic_router",
    "expenses_router",
    "groups_router",
    "on_authorization_error",
    "settlements_router",
]
