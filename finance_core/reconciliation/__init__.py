"""Recurrence reconciliation package."""

from finance_core.reconciliation.reconciler import Reconciler, reconcile

__all__ = ["Reconciler", "reconcile"]
