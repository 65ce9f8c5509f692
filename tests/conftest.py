"""Shared pytest fixtures for finance_engine tests."""

from datetime import date
from decimal import Decimal
import pytest

from finance_engine.domain.entities import AccountInfo, AccountType, PaymentPattern, Rule, RuleSet
from finance_engine.domain.identity import create_transaction

BANK = 1120
AMEX = 2122
CHASE_CARD = 2130


def make_txn(
    day: date | str,
    raw_description: str,
    amount: str,
    account_id: int,
    raw_category: str | None = None,
    source_file: str = "test.csv",
):
    """Build a transaction with a real fingerprint id."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return create_transaction(
        effective_date=day,
        raw_description=raw_description,
        signed_amount=Decimal(amount),
        account_id=account_id,
        raw_category=raw_category,
        source_file=source_file,
    )


@pytest.fixture
def txn():
    """Factory fixture for transactions."""
    return make_txn


@pytest.fixture
def accounts():
    """A small chart of accounts."""
    entries = [
        (1120, "Checking", AccountType.ASSET),
        (2122, "Amex Card", AccountType.LIABILITY),
        (2130, "Chase Card", AccountType.LIABILITY),
        (3130, "Reimbursement Income", AccountType.INCOME),
        (3250, "Cashback/Rewards", AccountType.INCOME),
        (4320, "Restaurants", AccountType.EXPENSE),
        (4410, "Clothing", AccountType.EXPENSE),
        (4999, "UNCATEGORIZED", AccountType.EXPENSE),
    ]
    return {account_id: AccountInfo(id=account_id, name=name, type=kind) for account_id, name, kind in entries}


@pytest.fixture
def rules():
    """Rule set mapping a few merchants to categories."""
    return RuleSet(
        user_rules=(Rule(pattern="CHIPOTLE", category_id=4320),),
        shared_rules=(Rule(pattern="ZARA", category_id=4410),),
        base_rules=(),
    )


@pytest.fixture
def amex_pattern():
    """Payment pattern recognizing Amex payments from checking."""
    return PaymentPattern(
        keywords={"PAYMENT", "AUTOPAY"},
        card_identifier="AMEX",
        eligible_accounts=[AMEX],
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def write_csv(tmp_path):
    """Write a normalized transaction CSV and return its path."""

    def _write(name: str, rows: list[tuple[str, str, str, int]]) -> str:
        lines = ["effective_date,raw_description,signed_amount,account_id"]
        for day, description, amount, account_id in rows:
            lines.append(f"{day},{description},{amount},{account_id}")
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(path)

    return _write
