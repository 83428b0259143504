from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ledger import ExpenseEntry, IncomeEntry, LedgerEntry
from models import CategoryType
from periods import month_key


@dataclass(frozen=True)
class MonthlyTotals:
    month: str
    income_cents: int
    expense_cents: int

    @property
    def net_cents(self) -> int:
        return self.income_cents - self.expense_cents


@dataclass(frozen=True)
class BudgetProgress:
    category_id: int
    month: date
    target_cents: int
    balance_cents: int
    percentage: float
    bar_width: float
    has_target: bool
    on_track: bool


@dataclass(frozen=True)
class CategoryShare:
    category_id: int
    total_cents: int
    share: float


def filter_by_tags(
    entries: Iterable[LedgerEntry], tag_ids: Optional[Collection[int]]
) -> list[LedgerEntry]:
    if not tag_ids:
        return list(entries)
    wanted = set(tag_ids)
    return [e for e in entries if e.tag_ids & wanted]


def _signed_amount(entry: LedgerEntry) -> int:
    if isinstance(entry, IncomeEntry):
        return entry.amount_cents
    if isinstance(entry, ExpenseEntry):
        return -entry.amount_cents
    return 0


def monthly_totals(entries: Iterable[LedgerEntry]) -> list[MonthlyTotals]:
    """Income and expense per ``YYYY-MM``, newest month first. Transfers are ignored."""
    income: dict[str, int] = defaultdict(int)
    expense: dict[str, int] = defaultdict(int)
    for entry in entries:
        if isinstance(entry, IncomeEntry):
            income[month_key(entry.date)] += entry.amount_cents
        elif isinstance(entry, ExpenseEntry):
            expense[month_key(entry.date)] += entry.amount_cents
    months = sorted(set(income) | set(expense), reverse=True)
    return [
        MonthlyTotals(
            month=month, income_cents=income[month], expense_cents=expense[month]
        )
        for month in months
    ]


def category_balances(
    entries: Iterable[LedgerEntry], month: date
) -> dict[int, int]:
    key = month_key(month)
    balances: dict[int, int] = defaultdict(int)
    for entry in entries:
        if entry.category_id is None or month_key(entry.date) != key:
            continue
        amount = _signed_amount(entry)
        if amount:
            balances[entry.category_id] += amount
    return dict(balances)


def budget_progress(
    category_id: int, month: date, target_cents: int, balance_cents: int
) -> BudgetProgress:
    if target_cents == 0:
        percentage = 0.0
    else:
        percentage = balance_cents / abs(target_cents) * 100
    return BudgetProgress(
        category_id=category_id,
        month=month,
        target_cents=target_cents,
        balance_cents=balance_cents,
        percentage=percentage,
        bar_width=min(max(percentage, 0.0), 100.0),
        has_target=target_cents != 0,
        # Covers both savings goals (positive) and deficit ceilings (negative).
        on_track=balance_cents >= target_cents,
    )


def category_breakdown(
    entries: Iterable[LedgerEntry],
    month: Optional[date],
    category_type: CategoryType = CategoryType.expense,
) -> list[CategoryShare]:
    entry_cls = IncomeEntry if category_type == CategoryType.income else ExpenseEntry
    key = month_key(month) if month else None
    totals: dict[int, int] = defaultdict(int)
    for entry in entries:
        if not isinstance(entry, entry_cls) or entry.category_id is None:
            continue
        if key is not None and month_key(entry.date) != key:
            continue
        totals[entry.category_id] += entry.amount_cents
    grand_total = sum(totals.values())
    shares = [
        CategoryShare(
            category_id=category_id,
            total_cents=total,
            share=(total / grand_total) if grand_total else 0.0,
        )
        for category_id, total in totals.items()
    ]
    shares.sort(key=lambda s: (-s.total_cents, s.category_id))
    return shares
