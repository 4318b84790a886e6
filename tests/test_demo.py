from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from auth import Caller
from database import Base, create_db_engine
from demo_data import DEFAULT_CATEGORIES, demo_catalog
from models import Category, Expense
from services import CategoryService, ExpenseService

ALICE = Caller(id="user-alice")


def make_session() -> Session:
    engine = create_db_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return SessionLocal()


def count_expenses(session: Session) -> int:
    return session.execute(select(func.count(Expense.id))).scalar_one()


def test_seed_defaults_is_idempotent_and_sorted_by_name() -> None:
    session = make_session()
    categories = CategoryService(session)

    assert categories.seed_defaults() == len(DEFAULT_CATEGORIES)
    assert categories.seed_defaults() == 0

    names = [c.name for c in categories.list_all()]
    assert names == sorted(DEFAULT_CATEGORIES)
    assert [c.name for c in categories.in_seed_order()] == list(DEFAULT_CATEGORIES)


def test_demo_catalog_size_depends_on_category_count() -> None:
    assert len(demo_catalog(6)) == 23
    assert len(demo_catalog(7)) == 25
    assert len(demo_catalog(8)) == 27
    assert len(demo_catalog(9)) == 29
    assert len(demo_catalog(12)) == 29


def test_seed_demo_creates_dated_expenses_per_category() -> None:
    session = make_session()
    CategoryService(session).seed_defaults()
    now = datetime(2026, 2, 28, 12, 0)

    created = ExpenseService(session, ALICE).seed_demo(now=now)

    assert created == 29
    assert count_expenses(session) == 29
    lunch = session.scalars(
        select(Expense).where(Expense.note == "Lunch at Italian restaurant")
    ).one()
    assert lunch.date == now
    assert lunch.amount_cents == 4550
    assert lunch.category.name == "Food & Dining"
    assert lunch.user_id == ALICE.id

    flight = session.scalars(select(Expense).where(Expense.note == "Flight tickets")).one()
    assert flight.date == now - timedelta(days=19)
    assert flight.category.name == "Travel"


def test_seed_demo_twice_doubles_the_count() -> None:
    session = make_session()
    CategoryService(session).seed_defaults()
    service = ExpenseService(session, ALICE)

    service.seed_demo()
    first = count_expenses(session)
    service.seed_demo()

    assert count_expenses(session) == first * 2


def test_seed_demo_skips_optional_categories_when_missing() -> None:
    session = make_session()
    session.add_all([Category(name=name) for name in DEFAULT_CATEGORIES[:6]])
    session.commit()

    assert ExpenseService(session, ALICE).seed_demo() == 23


def test_seed_demo_requires_categories() -> None:
    session = make_session()
    with pytest.raises(ValueError, match="Seed categories"):
        ExpenseService(session, ALICE).seed_demo()
    assert count_expenses(session) == 0
