from datetime import date

import pytest

from aggregation import (
    budget_progress,
    category_balances,
    category_breakdown,
    filter_by_tags,
    monthly_totals,
)
from ledger import ExpenseEntry, IncomeEntry, TransferEntry
from models import CategoryType

SALARY = 1
GROCERIES = 2
RENT = 3


def test_savings_goal_exceeded_is_on_track() -> None:
    entries = [
        IncomeEntry(
            id=1,
            account_id=1,
            amount_cents=500,
            date=date(2024, 1, 15),
            sequence=1,
            category_id=SALARY,
        )
    ]

    balances = category_balances(entries, date(2024, 1, 1))
    progress = budget_progress(SALARY, date(2024, 1, 1), 400, balances[SALARY])

    assert balances == {SALARY: 500}
    assert progress.percentage == pytest.approx(125.0)
    assert progress.bar_width == 100.0
    assert progress.on_track is True
    assert progress.has_target is True


def test_zero_target_reports_no_progress() -> None:
    progress = budget_progress(GROCERIES, date(2024, 1, 1), 0, -250)

    assert progress.percentage == 0.0
    assert progress.bar_width == 0.0
    assert progress.has_target is False


def test_deficit_ceiling_uses_absolute_target() -> None:
    within = budget_progress(GROCERIES, date(2024, 1, 1), -1000, -400)
    over = budget_progress(GROCERIES, date(2024, 1, 1), -1000, -1500)

    assert within.percentage == pytest.approx(-40.0)
    assert within.bar_width == 0.0
    assert within.on_track is True
    assert over.on_track is False


def test_category_balance_nets_income_and_expense_within_month() -> None:
    entries = [
        ExpenseEntry(
            id=1, account_id=1, amount_cents=300, date=date(2024, 1, 3), sequence=1,
            category_id=GROCERIES,
        ),
        IncomeEntry(
            id=2, account_id=1, amount_cents=50, date=date(2024, 1, 9), sequence=2,
            category_id=GROCERIES,
        ),
        ExpenseEntry(
            id=3, account_id=1, amount_cents=999, date=date(2024, 2, 1), sequence=3,
            category_id=GROCERIES,
        ),
    ]

    assert category_balances(entries, date(2024, 1, 1)) == {GROCERIES: -250}


def test_monthly_totals_skip_transfers_and_sort_newest_first() -> None:
    entries = [
        IncomeEntry(id=1, account_id=1, amount_cents=1000, date=date(2024, 1, 5), sequence=1),
        ExpenseEntry(id=2, account_id=1, amount_cents=300, date=date(2024, 1, 6), sequence=2),
        TransferEntry(
            id=3, account_id=1, destination_account_id=2, amount_cents=700,
            date=date(2024, 2, 1), sequence=3,
        ),
        ExpenseEntry(id=4, account_id=1, amount_cents=80, date=date(2024, 2, 2), sequence=4),
    ]

    totals = monthly_totals(entries)

    assert [t.month for t in totals] == ["2024-02", "2024-01"]
    assert totals[0].income_cents == 0
    assert totals[0].expense_cents == 80
    assert totals[1].net_cents == 700


def test_uncategorized_rows_excluded_by_category_selection() -> None:
    # The ledger query drops rows outside the selected categories before aggregation.
    entries = [
        ExpenseEntry(id=1, account_id=1, amount_cents=300, date=date(2024, 1, 5), sequence=1),
    ]
    selected = [e for e in entries if e.category_id in {GROCERIES}]

    assert monthly_totals(selected) == []
    assert category_balances(entries, date(2024, 1, 1)) == {}


def test_filter_by_tags_matches_any_selected_tag() -> None:
    tagged = ExpenseEntry(
        id=1, account_id=1, amount_cents=10, date=date(2024, 1, 1), sequence=1,
        tag_ids=frozenset({5, 6}),
    )
    plain = ExpenseEntry(id=2, account_id=1, amount_cents=10, date=date(2024, 1, 1), sequence=2)

    assert filter_by_tags([tagged, plain], [6]) == [tagged]
    assert filter_by_tags([tagged, plain], []) == [tagged, plain]


def test_category_breakdown_orders_by_total() -> None:
    entries = [
        ExpenseEntry(
            id=1, account_id=1, amount_cents=300, date=date(2024, 1, 5), sequence=1,
            category_id=GROCERIES,
        ),
        ExpenseEntry(
            id=2, account_id=1, amount_cents=900, date=date(2024, 1, 6), sequence=2,
            category_id=RENT,
        ),
        IncomeEntry(
            id=3, account_id=1, amount_cents=5000, date=date(2024, 1, 7), sequence=3,
            category_id=SALARY,
        ),
    ]

    shares = category_breakdown(entries, date(2024, 1, 1))

    assert [s.category_id for s in shares] == [RENT, GROCERIES]
    assert shares[0].share == pytest.approx(0.75)
    income = category_breakdown(entries, None, CategoryType.income)
    assert [(s.category_id, s.share) for s in income] == [(SALARY, 1.0)]
