"""
Finance Core - Source Package

Recurring obligation scheduling and budget reconciliation for a personal
finance app. Given recurring income/expense templates and the month's real
transactions, it decides what is paid, due soon or overdue, projects the
next few instances, keeps one budget bucket per owner/period/priority, and
notifies the user once per due-soon or overdue occurrence.

DESIGN PRINCIPLES:
1. Schedule arithmetic has exactly one implementation
2. Reconciliation is pure and re-run on every refresh
3. Persistence and notification delivery are swappable collaborators
4. Every user-visible decision is auditable
"""

__version__ = "1.0.0"
