"""Budget bucket allocation package."""

from finance_core.budgets.allocator import ALL_BUCKET_TYPES, BudgetAllocator

__all__ = ["ALL_BUCKET_TYPES", "BudgetAllocator"]
