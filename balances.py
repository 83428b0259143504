"""Replay the transaction log into per-account balances.

The replay always runs over the complete, unfiltered log. Date and account
filters only select which snapshots are returned afterwards.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Optional

from ledger import (
    ExpenseEntry,
    IncomeEntry,
    LedgerEntry,
    TransferEntry,
    TransferIndex,
    chronological_key,
)


@dataclass(frozen=True)
class DailyBalance:
    date: date
    account_id: int
    balance_cents: int


@dataclass(frozen=True)
class BalanceReplay:
    balances: Mapping[int, int]
    snapshots: tuple[DailyBalance, ...]

    def balance_of(self, account_id: int) -> int:
        return self.balances.get(account_id, 0)

    @property
    def total_cents(self) -> int:
        return sum(self.balances.values())


def _effects(entry: LedgerEntry, index: TransferIndex) -> list[tuple[int, int]]:
    if isinstance(entry, IncomeEntry):
        return [(entry.account_id, entry.amount_cents)]
    if isinstance(entry, ExpenseEntry):
        return [(entry.account_id, -entry.amount_cents)]
    if isinstance(entry, TransferEntry):
        # Both legs mirror the same movement; only the origin leg is applied.
        # An orphan leg comes back as its own origin and is logged by orient().
        origin, _ = index.orient(entry)
        if origin.id != entry.id:
            return []
        return [
            (entry.account_id, -entry.amount_cents),
            (entry.destination_account_id, entry.amount_cents),
        ]
    raise TypeError(f"Unknown ledger entry: {entry!r}")


def replay(
    entries: Iterable[LedgerEntry],
    opening_balances: Mapping[int, int],
    *,
    as_of: Optional[date] = None,
) -> BalanceReplay:
    """Fold the log over the opening balances in (date, sequence) order.

    Rows dated after ``as_of`` are ignored. Each applied row snapshots the
    accounts it touched; a later row on the same day replaces that day's
    snapshot for the account.
    """
    entries = list(entries)
    index = TransferIndex(entries)
    running: dict[int, int] = dict(opening_balances)
    end_of_day: dict[tuple[date, int], int] = {}

    for entry in sorted(entries, key=chronological_key):
        if as_of is not None and entry.date > as_of:
            break
        for account_id, delta in _effects(entry, index):
            running[account_id] = running.get(account_id, 0) + delta
            end_of_day[(entry.date, account_id)] = running[account_id]

    snapshots = tuple(
        DailyBalance(date=day, account_id=account_id, balance_cents=balance)
        for (day, account_id), balance in sorted(end_of_day.items())
    )
    return BalanceReplay(balances=MappingProxyType(running), snapshots=snapshots)


def current_balances(
    entries: Iterable[LedgerEntry],
    opening_balances: Mapping[int, int],
    today: date,
) -> BalanceReplay:
    return replay(entries, opening_balances, as_of=today)


def filter_snapshots(
    snapshots: Iterable[DailyBalance],
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    account_ids: Optional[Collection[int]] = None,
    newest_first: bool = False,
) -> list[DailyBalance]:
    selected = set(account_ids or ())
    rows = [
        snap
        for snap in snapshots
        if (start is None or snap.date >= start)
        and (end is None or snap.date <= end)
        and (not selected or snap.account_id in selected)
    ]
    if newest_first:
        rows.sort(key=lambda snap: (snap.date, snap.account_id), reverse=True)
    return rows
