"""
Screen functions, one module per screen family.

Each function validates its input, performs one or two API calls, shows a
toast and returns the fetched data (or None on failure).

- account: login, sign-up with email code, password change, logout
- contacts: contact list/detail and the per-contact ledger
- dashboard: balance totals, monthly summary and balance buckets
- personal_khaata: income/expense ledger
- group_khaata: split expenses between the user and several contacts
- mess: meal records and analytics
- reports: PDF/CSV export to disk
- settings: biometric lock, backup, account deletion
- notifications: reminder history
"""

from .base import ScreenContext

__all__ = ["ScreenContext"]
