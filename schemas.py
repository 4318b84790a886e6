from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from formatting import parse_amount


class SortKey(str, Enum):
    date_desc = "date-desc"
    date_asc = "date-asc"
    amount_desc = "amount-desc"
    amount_asc = "amount-asc"


class ExpenseIn(BaseModel):
    # positivity is checked by the service so it can raise InvalidAmount
    amount: Decimal
    category_id: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator("amount", mode="before")
    @classmethod
    def amount_from_text(cls, value):
        # form input such as "$1,234.50" or "12,5"
        if isinstance(value, str):
            return parse_amount(value)
        return value


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    amount: float
    category_id: str
    category: CategoryOut
    date: datetime
    note: Optional[str]
    created_at: datetime


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class ExpensePage(BaseModel):
    data: list[ExpenseOut]
    pagination: Pagination


class CategoryTotal(BaseModel):
    name: str
    total: float
    count: int

    def share_of(self, summary_total: float) -> float:
        """Percentage of summary_total; 0.0 when the window has no spend."""
        if not summary_total:
            return 0.0
        return self.total / summary_total * 100


class DashboardSummary(BaseModel):
    total: float
    count: int
    by_category: list[CategoryTotal]
