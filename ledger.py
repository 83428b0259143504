"""Typed, immutable views of transaction rows.

Reports never work on ORM rows directly: rows are converted once into
``LedgerEntry`` values (one variant per transaction type) so that the pairing,
balance and aggregation code operates on a frozen snapshot of the log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Union

from models import Transaction, TransactionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class _EntryBase:
    id: int
    account_id: int
    amount_cents: int
    date: date
    sequence: int
    description: str = ""
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    notes: Optional[str] = None
    tag_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True, kw_only=True)
class IncomeEntry(_EntryBase):
    @property
    def type(self) -> TransactionType:
        return TransactionType.income


@dataclass(frozen=True, kw_only=True)
class ExpenseEntry(_EntryBase):
    @property
    def type(self) -> TransactionType:
        return TransactionType.expense


@dataclass(frozen=True, kw_only=True)
class TransferEntry(_EntryBase):
    destination_account_id: int
    transfer_pair_id: Optional[int] = None

    @property
    def type(self) -> TransactionType:
        return TransactionType.transfer


LedgerEntry = Union[IncomeEntry, ExpenseEntry, TransferEntry]


def entry_from_row(
    txn: Transaction, tag_ids: Optional[frozenset[int]] = None
) -> LedgerEntry:
    if tag_ids is None:
        tag_ids = frozenset(tag.id for tag in txn.tags)
    common = dict(
        id=txn.id,
        account_id=txn.account_id,
        amount_cents=txn.amount_cents,
        date=txn.date,
        sequence=txn.sequence,
        description=txn.description,
        category_id=txn.category_id,
        subcategory_id=txn.subcategory_id,
        notes=txn.notes,
        tag_ids=tag_ids,
    )
    if txn.type == TransactionType.income:
        return IncomeEntry(**common)
    if txn.type == TransactionType.expense:
        return ExpenseEntry(**common)
    if txn.destination_account_id is None:
        raise ValueError(f"Transfer {txn.id} has no destination account")
    return TransferEntry(
        **common,
        destination_account_id=txn.destination_account_id,
        transfer_pair_id=txn.transfer_pair_id,
    )


def chronological_key(entry: LedgerEntry) -> tuple[date, int]:
    return (entry.date, entry.sequence)


class TransferIndex:
    """Pairs transfer legs and decides which one is the origin.

    A leg is paired with the row its ``transfer_pair_id`` names, or with the
    row that names it when its own pointer was never back-filled.
    """

    def __init__(self, entries: Iterable[LedgerEntry]) -> None:
        self._transfers: dict[int, TransferEntry] = {
            e.id: e for e in entries if isinstance(e, TransferEntry)
        }
        self._referenced_by: dict[int, int] = {}
        for entry in self._transfers.values():
            if entry.transfer_pair_id is not None:
                self._referenced_by.setdefault(entry.transfer_pair_id, entry.id)

    def pair_of(self, entry: TransferEntry) -> Optional[TransferEntry]:
        pair_id = entry.transfer_pair_id
        if pair_id is None:
            pair_id = self._referenced_by.get(entry.id)
        if pair_id is None or pair_id == entry.id:
            return None
        return self._transfers.get(pair_id)

    def orient(self, entry: TransferEntry) -> tuple[TransferEntry, Optional[TransferEntry]]:
        """Return ``(origin, credit)``; ``credit`` is None for an orphan leg."""
        pair = self.pair_of(entry)
        if pair is None:
            logger.warning(
                f"transfer_orphan: transaction_id={entry.id} "
                f"pair_id={entry.transfer_pair_id}"
            )
            return entry, None
        if entry.sequence < pair.sequence:
            return entry, pair
        return pair, entry
