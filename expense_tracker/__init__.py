"""
Expense Tracker - Source Package

Backend library for a personal expense-tracking application: users record
expenses with a category, currency, date and an optional receipt, then
browse them filtered, sorted, paginated and summarised.

DESIGN PRINCIPLES:
1. Every query and mutation is scoped to one authenticated user
2. Amounts in different currencies are never added together
3. Statistics are pure functions of a snapshot list
4. Storage and attachment backends are swappable
5. Every mutation is auditable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
