from __future__ import annotations

import csv
import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from io import StringIO
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, joinedload

from auth import Caller, require_caller
from cache import ViewCache
from demo_data import DEFAULT_CATEGORIES, REQUIRED_CATEGORY_COUNT, demo_catalog
from errors import InvalidAmount, NotFoundOrUnauthorized
from formatting import (
    cents_to_amount,
    format_currency,
    format_date_for_log,
    parse_expense_date,
    sanitize_csv_value,
    to_cents,
)
from models import Category, Expense
from periods import Window, local_now
from schemas import (
    CategoryTotal,
    DashboardSummary,
    ExpenseIn,
    ExpenseOut,
    ExpensePage,
    Pagination,
    SortKey,
)

logger = logging.getLogger(__name__)


# largest single expense accepted, in cents ($1,000,000,000.00)
MAX_AMOUNT_CENTS = 100_000_000_000
# OFFSET and LIMIT are bound as signed 64-bit integers
MAX_SQL_INT = 2**63 - 1

SORT_COLUMNS = {
    SortKey.date_desc: (Expense.date, True),
    SortKey.date_asc: (Expense.date, False),
    SortKey.amount_desc: (Expense.amount_cents, True),
    SortKey.amount_asc: (Expense.amount_cents, False),
}


def _window_key(window: Window) -> tuple[str, str]:
    return (window.start.isoformat(), window.end.isoformat())


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Category]:
        stmt = select(Category).order_by(Category.name)
        return list(self.session.scalars(stmt).all())

    def in_seed_order(self) -> list[Category]:
        """Default categories in catalog order, then any others by name."""
        rank = {name: idx for idx, name in enumerate(DEFAULT_CATEGORIES)}
        return sorted(
            self.list_all(),
            key=lambda c: (rank.get(c.name, len(rank)), c.name),
        )

    def seed_defaults(self) -> int:
        existing = set(self.session.scalars(select(Category.name)).all())
        created = 0
        for name in DEFAULT_CATEGORIES:
            if name in existing:
                continue
            self.session.add(Category(name=name))
            created += 1
        self.session.commit()
        logger.info(f"category_seed: created={created} existing={len(existing)}")
        return created


class ExpenseService:
    def __init__(
        self,
        session: Session,
        caller: Optional[Caller],
        cache: Optional[ViewCache] = None,
    ) -> None:
        self.session = session
        self.caller = caller
        self.cache = cache

    def _owner(self) -> Caller:
        return require_caller(self.caller)

    def _commit(self, user_id: str) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        finally:
            if self.cache is not None:
                self.cache.invalidate(user_id)

    def _scoped(self, user_id: str, window: Window):
        return select(Expense).where(
            Expense.user_id == user_id,
            Expense.date >= window.start,
            Expense.date <= window.end,
        )

    def list(
        self,
        window: Window,
        category_id: Optional[str] = None,
        sort: SortKey = SortKey.date_desc,
        page: int = 1,
        page_size: int = 10,
    ) -> ExpensePage:
        caller = self._owner()
        if page < 1:
            raise ValueError("Page must be at least 1")
        if page_size < 1:
            raise ValueError("Page size must be at least 1")
        if page_size > MAX_SQL_INT or (page - 1) * page_size > MAX_SQL_INT:
            raise ValueError("Page is out of range")
        sort = SortKey(sort)

        def compute() -> ExpensePage:
            logger.info(
                f"expense_list: user={caller.id} "
                f"from={format_date_for_log(window.start)} "
                f"to={format_date_for_log(window.end)}"
            )
            base = self._scoped(caller.id, window)
            if category_id is not None:
                base = base.where(Expense.category_id == category_id)

            total = self.session.execute(
                select(func.count()).select_from(base.subquery())
            ).scalar_one()

            column, descending = SORT_COLUMNS[sort]
            if descending:
                order = (column.desc(), Expense.created_at.desc(), Expense.id.desc())
            else:
                order = (column.asc(), Expense.created_at.asc(), Expense.id.asc())
            stmt = (
                base.options(joinedload(Expense.category))
                .order_by(*order)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            rows = self.session.scalars(stmt).all()
            return ExpensePage(
                data=[ExpenseOut.model_validate(row) for row in rows],
                pagination=Pagination(
                    page=page,
                    page_size=page_size,
                    total=total,
                    total_pages=math.ceil(total / page_size),
                ),
            )

        if self.cache is None:
            return compute()
        key = ("list", _window_key(window), category_id, sort.value, page, page_size)
        return self.cache.get_or_compute(caller.id, key, compute)

    def recent(self, window: Window, limit: int = 5) -> list[ExpenseOut]:
        return self.list(window, sort=SortKey.date_desc, page=1, page_size=limit).data

    def create(self, data: ExpenseIn) -> str:
        caller = self._owner()
        if data.amount <= 0:
            raise InvalidAmount()
        if data.amount > Decimal(MAX_AMOUNT_CENTS) / 100:
            raise InvalidAmount(
                f"Amount must not exceed {format_currency(MAX_AMOUNT_CENTS / 100)}"
            )
        amount_cents = to_cents(data.amount)
        if amount_cents <= 0:
            raise InvalidAmount()
        expense_date = parse_expense_date(data.date)
        note = data.note.strip() if data.note else None

        logger.info(
            f"expense_create: user={caller.id} "
            f"amount={format_currency(cents_to_amount(amount_cents))} "
            f"category={data.category_id}"
        )
        expense = Expense(
            user_id=caller.id,
            amount_cents=amount_cents,
            category_id=data.category_id,
            date=expense_date,
            note=note or None,
        )
        self.session.add(expense)
        self._commit(caller.id)
        logger.info(f"expense_create: id={expense.id} ok")
        return expense.id

    def delete(self, expense_id: str) -> None:
        caller = self._owner()
        logger.info(f"expense_delete: id={expense_id} user={caller.id}")
        expense = self.session.get(Expense, expense_id)
        if expense is None or expense.user_id != caller.id:
            logger.warning(f"expense_delete_denied: id={expense_id} user={caller.id}")
            raise NotFoundOrUnauthorized()
        self.session.delete(expense)
        self._commit(caller.id)
        logger.info(f"expense_delete: id={expense_id} ok")

    def clear_all(self) -> int:
        caller = self._owner()
        logger.info(f"expense_clear: user={caller.id}")
        result = self.session.execute(
            delete(Expense).where(Expense.user_id == caller.id)
        )
        self._commit(caller.id)
        count = result.rowcount or 0
        logger.info(f"expense_clear: user={caller.id} deleted={count}")
        return count

    def seed_demo(self, now: Optional[datetime] = None) -> int:
        caller = self._owner()
        categories = CategoryService(self.session).in_seed_order()
        if len(categories) < REQUIRED_CATEGORY_COUNT:
            raise ValueError("Seed categories before creating demo expenses")
        now = now or local_now()
        logger.info(f"expense_demo: user={caller.id} categories={len(categories)}")

        entries = demo_catalog(len(categories))
        # single commit; the batch is all-or-nothing
        self.session.add_all(
            Expense(
                user_id=caller.id,
                amount_cents=to_cents(entry.amount),
                category_id=categories[entry.category_index].id,
                date=now - timedelta(days=entry.days_ago),
                note=entry.note,
            )
            for entry in entries
        )
        self._commit(caller.id)
        logger.info(f"expense_demo: user={caller.id} created={len(entries)}")
        return len(entries)

    def export_csv(self, window: Window, category_id: Optional[str] = None) -> str:
        caller = self._owner()
        stmt = (
            self._scoped(caller.id, window)
            .options(joinedload(Expense.category))
            .order_by(Expense.date.asc(), Expense.created_at.asc())
        )
        if category_id is not None:
            stmt = stmt.where(Expense.category_id == category_id)
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["Date", "Amount", "Category", "Note"])
        for expense in self.session.scalars(stmt).all():
            writer.writerow(
                [
                    expense.date.date().isoformat(),
                    f"{expense.amount_cents / 100:.2f}",
                    sanitize_csv_value(expense.category.name),
                    sanitize_csv_value(expense.note or ""),
                ]
            )
        return output.getvalue()


class SummaryService:
    def __init__(
        self,
        session: Session,
        caller: Optional[Caller],
        cache: Optional[ViewCache] = None,
    ) -> None:
        self.session = session
        self.caller = caller
        self.cache = cache

    def summarize(self, window: Window) -> DashboardSummary:
        caller = require_caller(self.caller)
        if self.cache is None:
            return self._compute(caller, window)
        return self.cache.get_or_compute(
            caller.id,
            ("summary", _window_key(window)),
            lambda: self._compute(caller, window),
        )

    def _compute(self, caller: Caller, window: Window) -> DashboardSummary:
        stmt = (
            select(Expense)
            .options(joinedload(Expense.category))
            .where(
                Expense.user_id == caller.id,
                Expense.date >= window.start,
                Expense.date <= window.end,
            )
        )
        expenses = self.session.scalars(stmt).all()

        total_cents = 0
        # grouped by display name; names are unique so this matches grouping by id
        groups: dict[str, list[int]] = {}
        for expense in expenses:
            total_cents += expense.amount_cents
            bucket = groups.setdefault(expense.category.name, [0, 0])
            bucket[0] += expense.amount_cents
            bucket[1] += 1

        by_category = [
            CategoryTotal(name=name, total=cents_to_amount(cents), count=count)
            for name, (cents, count) in groups.items()
        ]
        by_category.sort(key=lambda c: c.total, reverse=True)
        return DashboardSummary(
            total=cents_to_amount(total_cents),
            count=len(expenses),
            by_category=by_category,
        )
