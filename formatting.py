import re
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union
from zoneinfo import ZoneInfo

from config import get_settings

MONTHS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


GROUPED_AMOUNT = re.compile(r"^-?\d{1,3}(,\d{3})+(\.\d+)?$")


def parse_amount(value: str) -> Decimal:
    """Parse "$1,234.50" style input; a lone comma before 1-2 digits is a decimal comma."""
    clean = value.strip().replace("$", "").replace(" ", "")
    if GROUPED_AMOUNT.match(clean):
        clean = clean.replace(",", "")
    elif clean.count(",") == 1 and "." not in clean:
        whole, _, fraction = clean.partition(",")
        if len(fraction) > 2:
            raise ValueError("Invalid amount")
        clean = f"{whole}.{fraction}"
    try:
        amount = Decimal(clean)
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if not amount.is_finite():
        raise ValueError("Invalid amount")
    return amount


def to_cents(amount: Union[Decimal, int, float, str]) -> int:
    # floats go through str() so 45.5 is 4550, not 4549.99...
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_amount(cents: int) -> float:
    return float(Decimal(cents) / 100)


def _naive_local(value: datetime) -> datetime:
    # stored timestamps are naive wall-clock time in the configured timezone
    if value.tzinfo is None:
        return value
    local = value.astimezone(ZoneInfo(get_settings().timezone))
    return local.replace(tzinfo=None)


def parse_expense_date(value: Union[str, date, datetime]) -> datetime:
    """Accepts an ISO date (midnight) or an ISO datetime."""
    if isinstance(value, datetime):
        return _naive_local(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raw = value.strip()
    if not raw:
        raise ValueError("Date is required")
    try:
        if len(raw) == 10:
            return datetime.combine(date.fromisoformat(raw), time.min)
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value}") from exc
    return _naive_local(parsed)


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


def format_date(value: Union[date, datetime]) -> str:
    return f"{MONTHS[value.month - 1]} {value.day}, {value.year}"


def format_date_for_log(value: datetime) -> str:
    return f"{format_date(value)} {value.hour:02d}:{value.minute:02d}"
