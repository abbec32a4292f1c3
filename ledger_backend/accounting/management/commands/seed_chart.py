# accounting/management/commands/seed_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account

# (code, name, type, level, parent_code)
SAMPLE_CHART = [
    # GROUPS
    ("1", "Assets", Account.ASSET, Account.GROUP, None),
    ("2", "Liabilities", Account.LIABILITY, Account.GROUP, None),
    ("3", "Equity", Account.EQUITY, Account.GROUP, None),
    ("4", "Revenue", Account.REVENUE, Account.GROUP, None),
    ("5", "Expenses", Account.EXPENSE, Account.GROUP, None),
    # MAIN
    ("11", "Current Assets", Account.ASSET, Account.MAIN, "1"),
    ("12", "Fixed Assets", Account.ASSET, Account.MAIN, "1"),
    ("21", "Current Liabilities", Account.LIABILITY, Account.MAIN, "2"),
    ("31", "Capital", Account.EQUITY, Account.MAIN, "3"),
    ("41", "Operating Revenue", Account.REVENUE, Account.MAIN, "4"),
    ("51", "Operating Expenses", Account.EXPENSE, Account.MAIN, "5"),
    # SUB
    ("111", "Cash", Account.ASSET, Account.SUB, "11"),
    ("112", "Banks", Account.ASSET, Account.SUB, "11"),
    ("113", "Accounts Receivable", Account.ASSET, Account.SUB, "11"),
    ("121", "Machinery", Account.ASSET, Account.SUB, "12"),
    ("211", "Accounts Payable", Account.LIABILITY, Account.SUB, "21"),
    ("311", "Owner Capital", Account.EQUITY, Account.SUB, "31"),
    ("411", "Sales of Goods", Account.REVENUE, Account.SUB, "41"),
    ("511", "Purchases", Account.EXPENSE, Account.SUB, "51"),
    ("512", "Administrative Expenses", Account.EXPENSE, Account.SUB, "51"),
    # DETAIL (postable)
    ("1111", "Main Cash Box", Account.ASSET, Account.DETAIL, "111"),
    ("1121", "Bank Mellat", Account.ASSET, Account.DETAIL, "112"),
    ("1122", "Bank Melli", Account.ASSET, Account.DETAIL, "112"),
    ("1131", "Customers", Account.ASSET, Account.DETAIL, "113"),
    ("1211", "Production Machinery", Account.ASSET, Account.DETAIL, "121"),
    ("2111", "Suppliers", Account.LIABILITY, Account.DETAIL, "211"),
    ("3111", "Paid-in Capital", Account.EQUITY, Account.DETAIL, "311"),
    ("4111", "Product Sales", Account.REVENUE, Account.DETAIL, "411"),
    ("5111", "Goods Purchased", Account.EXPENSE, Account.DETAIL, "511"),
    ("5121", "Office Expenses", Account.EXPENSE, Account.DETAIL, "512"),
]


def seed_sample_chart() -> tuple[int, int]:
    """Create or refresh the sample chart. Returns (created, updated)."""
    by_code: dict[str, Account] = {}
    created_count = 0
    updated_count = 0

    # Parents precede children in SAMPLE_CHART.
    for code, name, account_type, level, parent_code in SAMPLE_CHART:
        parent = by_code.get(parent_code) if parent_code else None

        acc = Account.objects.filter(code=code).first()
        if acc is None:
            acc = Account(
                code=code,
                name=name,
                account_type=account_type,
                level=level,
                parent=parent,
                is_active=True,
            )
            acc.save()
            created_count += 1
        elif acc.name != name or not acc.is_active:
            acc.name = name
            acc.is_active = True
            acc.save()
            updated_count += 1

        by_code[code] = acc

    return created_count, updated_count


class Command(BaseCommand):
    help = "Seed a 4-level sample Chart of Accounts (Group → Main → Sub → Detail)"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding sample Chart of Accounts...")

        created_count, updated_count = seed_sample_chart()

        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Chart seeded ({created_count} new accounts, {updated_count} updated)."
            )
        )
