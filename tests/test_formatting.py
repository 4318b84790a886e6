from datetime import datetime
from decimal import Decimal

import pytest

from formatting import (
    cents_to_amount,
    format_currency,
    format_date,
    format_date_for_log,
    parse_amount,
    parse_expense_date,
    sanitize_csv_value,
    to_cents,
)
from schemas import ExpenseIn


def test_parse_amount_accepts_form_input() -> None:
    assert parse_amount("12.50") == Decimal("12.50")
    assert parse_amount("$ 1,234.50") == Decimal("1234.50")
    assert parse_amount("12,5") == Decimal("12.5")
    assert parse_amount("12,50") == Decimal("12.50")
    with pytest.raises(ValueError):
        parse_amount("twelve")


def test_parse_amount_reads_grouped_thousands() -> None:
    assert parse_amount("1,000") == Decimal("1000")
    assert parse_amount("$1,234") == Decimal("1234")
    assert parse_amount("1,234,567.89") == Decimal("1234567.89")
    for ambiguous in ("1,0000", "1,2,3", "12,345,6"):
        with pytest.raises(ValueError):
            parse_amount(ambiguous)


def test_expense_in_parses_text_amounts() -> None:
    data = ExpenseIn(amount="$45.50", category_id="c", date="2026-02-05")
    assert data.amount == Decimal("45.50")
    grouped = ExpenseIn(amount="1,000", category_id="c", date="2026-02-05")
    assert grouped.amount == Decimal("1000")


def test_cents_conversion_rounds_half_up() -> None:
    assert to_cents(Decimal("45.505")) == 4551
    assert to_cents(45.5) == 4550
    assert to_cents(Decimal("0.004")) == 0
    assert cents_to_amount(4550) == 45.5


def test_parse_expense_date_variants() -> None:
    assert parse_expense_date("2026-02-05") == datetime(2026, 2, 5)
    assert parse_expense_date("2026-02-05T09:15:00") == datetime(2026, 2, 5, 9, 15)
    # configured timezone defaults to UTC
    assert parse_expense_date("2026-02-05T09:15:00Z") == datetime(2026, 2, 5, 9, 15)
    with pytest.raises(ValueError):
        parse_expense_date("")
    with pytest.raises(ValueError):
        parse_expense_date("05/02/2026")


def test_display_formats() -> None:
    assert format_currency(1234.5) == "$1,234.50"
    assert format_date(datetime(2026, 2, 5)) == "Feb 5, 2026"
    assert format_date_for_log(datetime(2026, 2, 5, 7, 3)) == "Feb 5, 2026 07:03"


def test_sanitize_csv_value_prefixes_formulas() -> None:
    assert sanitize_csv_value("=1+1") == "\t=1+1"
    assert sanitize_csv_value("https://example.com") == "\thttps://example.com"
    assert sanitize_csv_value("  Lunch ") == "Lunch"
    assert sanitize_csv_value("\t=1+1") == "\t=1+1"
    assert sanitize_csv_value("") == ""
