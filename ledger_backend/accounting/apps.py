# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry ledger core:
- Chart of accounts (Group -> Main -> Sub -> Detail)
- Journal documents (Draft -> Posted / Cancelled)
- Accounting periods + closing checks
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Ledger"
