from dataclasses import dataclass
from decimal import Decimal


DEFAULT_CATEGORIES = (
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Travel",
    "Education",
    "Other",
)

# the first six categories are always present; the rest are optional
REQUIRED_CATEGORY_COUNT = 6


@dataclass(frozen=True)
class DemoExpense:
    amount: Decimal
    category_index: int
    days_ago: int
    note: str


def _d(amount: str, category_index: int, days_ago: int, note: str) -> DemoExpense:
    return DemoExpense(Decimal(amount), category_index, days_ago, note)


DEMO_EXPENSES = (
    # Food & Dining
    _d("45.50", 0, 0, "Lunch at Italian restaurant"),
    _d("85.30", 0, 3, "Grocery shopping at Whole Foods"),
    _d("12.75", 0, 5, "Morning coffee and pastry"),
    _d("67.20", 0, 8, "Dinner with friends"),
    _d("28.90", 0, 12, "Takeout pizza"),
    # Transportation
    _d("12.99", 1, 1, "Subway monthly pass"),
    _d("55.00", 1, 6, "Gas station fill-up"),
    _d("8.50", 1, 14, "Uber ride home"),
    _d("125.00", 1, 20, "Car maintenance and oil change"),
    # Shopping
    _d("89.00", 2, 2, "New running shoes"),
    _d("156.45", 2, 9, "Winter jacket"),
    _d("34.99", 2, 16, "Phone case and accessories"),
    _d("42.00", 2, 22, "Books from bookstore"),
    # Entertainment
    _d("15.00", 3, 4, "Movie tickets for two"),
    _d("45.00", 3, 11, "Concert tickets"),
    _d("19.99", 3, 18, "Netflix subscription"),
    _d("32.50", 3, 24, "Bowling night"),
    # Bills & Utilities
    _d("120.00", 4, 7, "Monthly electric bill"),
    _d("65.00", 4, 7, "Internet bill"),
    _d("89.99", 4, 15, "Phone bill"),
    # Healthcare
    _d("200.00", 5, 10, "Doctor checkup copay"),
    _d("35.50", 5, 17, "Pharmacy prescription"),
    _d("75.00", 5, 25, "Dental cleaning"),
    # Travel
    _d("450.00", 6, 13, "Weekend hotel stay"),
    _d("180.00", 6, 19, "Flight tickets"),
    # Education
    _d("299.00", 7, 21, "Online course subscription"),
    _d("48.50", 7, 27, "Study materials"),
    # Other
    _d("25.00", 8, 23, "Gift for friend"),
    _d("15.99", 8, 28, "Miscellaneous supplies"),
)


def demo_catalog(category_count: int) -> list[DemoExpense]:
    """Entries whose category exists when `category_count` categories are seeded."""
    return [e for e in DEMO_EXPENSES if e.category_index < category_count]
