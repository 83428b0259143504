"""Collapse transfer pairs into one display row per transfer."""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from ledger import LedgerEntry, TransferEntry, TransferIndex


@dataclass(frozen=True)
class DisplayRow:
    entry: LedgerEntry
    is_credit: bool = False
    unpaired: bool = False
    from_account_id: Optional[int] = None
    to_account_id: Optional[int] = None

    @property
    def is_transfer(self) -> bool:
        return isinstance(self.entry, TransferEntry)

    @property
    def tag_ids(self) -> frozenset[int]:
        return self.entry.tag_ids


def _transfer_row(
    shown: TransferEntry, origin: TransferEntry, credit: Optional[TransferEntry]
) -> DisplayRow:
    if credit is None:
        return DisplayRow(
            entry=shown,
            unpaired=True,
            from_account_id=shown.account_id,
            to_account_id=shown.destination_account_id,
        )
    return DisplayRow(
        entry=shown,
        is_credit=shown.id == credit.id,
        from_account_id=origin.account_id,
        to_account_id=credit.account_id,
    )


def resolve_display_rows(
    candidates: Sequence[LedgerEntry],
    all_entries: Iterable[LedgerEntry],
    account_ids: Optional[Collection[int]] = None,
) -> list[DisplayRow]:
    """Build the transaction list shown to the user.

    ``candidates`` are the rows left after date, category and tag filters, in
    display order. ``all_entries`` is the unfiltered log and is only used to
    find transfer partners. ``account_ids`` is the account filter; an empty
    or missing filter means every account.

    Each transfer pair yields at most one row. Without an account filter the
    origin leg is shown. With a filter, the origin leg wins when its account
    is selected; when only the destination account is selected the credit
    leg is shown instead, so the row appears under the account it credited.
    """
    index = TransferIndex(all_entries)
    selected = set(account_ids or ())
    processed: set[int] = set()
    rows: list[DisplayRow] = []

    for entry in candidates:
        if entry.id in processed:
            continue
        if not isinstance(entry, TransferEntry):
            if selected and entry.account_id not in selected:
                continue
            rows.append(DisplayRow(entry=entry))
            processed.add(entry.id)
            continue

        origin, credit = index.orient(entry)
        if credit is None:
            processed.add(entry.id)
            if selected and not (
                {entry.account_id, entry.destination_account_id} & selected
            ):
                continue
            rows.append(_transfer_row(entry, entry, None))
            continue

        pair_ids = (origin.id, credit.id)
        if not selected or origin.account_id in selected:
            rows.append(_transfer_row(origin, origin, credit))
            processed.update(pair_ids)
        elif credit.account_id in selected:
            if entry.id == origin.id:
                # Leave the pair open; the credit leg surfaces it when reached.
                continue
            rows.append(_transfer_row(credit, origin, credit))
            processed.update(pair_ids)
        else:
            processed.update(pair_ids)

    return rows
