from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from aggregation import (
    budget_progress,
    category_balances,
    category_breakdown,
    filter_by_tags,
    monthly_totals,
)
from balances import current_balances, filter_snapshots, replay
from ledger import LedgerEntry, entry_from_row
from models import (
    ACCOUNT_TYPE_LABELS,
    Account,
    Budget,
    Category,
    CategoryType,
    Subcategory,
    Tag,
    Transaction,
    TransactionType,
    transaction_tags,
)
from pairing import DisplayRow, resolve_display_rows
from periods import local_today, month_start
from schemas import (
    AccountIn,
    BudgetIn,
    CategoryIn,
    SubcategoryIn,
    TagIn,
    TransactionIn,
)

logger = logging.getLogger(__name__)

SEQUENCE_ATTEMPTS = 3


def get_current_user_id() -> int:
    return 1


class LedgerUnavailable(RuntimeError):
    """The ledger could not be read; the report cannot be rendered."""


@dataclass
class TransactionFilters:
    start: Optional[date] = None
    end: Optional[date] = None
    account_ids: list[int] = field(default_factory=list)
    category_ids: list[int] = field(default_factory=list)
    subcategory_ids: list[int] = field(default_factory=list)
    tag_ids: list[int] = field(default_factory=list)

    def without_accounts(self) -> "TransactionFilters":
        return replace(self, account_ids=[])

    def without_tags(self) -> "TransactionFilters":
        return replace(self, tag_ids=[])


class AccountService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_all(self) -> list[Account]:
        stmt = (
            select(Account)
            .where(Account.user_id == self.user_id)
            .order_by(Account.created_at.desc(), Account.id.desc())
        )
        return self.session.scalars(stmt).all()

    def get(self, account_id: int) -> Account:
        account = self.session.get(Account, account_id)
        if not account or account.user_id != self.user_id:
            raise ValueError("Account not found")
        return account

    def create(self, data: AccountIn) -> Account:
        account = Account(
            user_id=self.user_id,
            name=data.name.strip(),
            type=data.type,
            opening_balance_cents=data.opening_balance_cents,
            institution=data.institution,
        )
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account

    def update(self, account_id: int, data: AccountIn) -> Account:
        account = self.get(account_id)
        account.name = data.name.strip()
        account.type = data.type
        account.opening_balance_cents = data.opening_balance_cents
        account.institution = data.institution
        self.session.commit()
        self.session.refresh(account)
        return account

    def delete(self, account_id: int) -> None:
        account = self.get(account_id)
        rows = self.session.scalars(
            select(Transaction).where(
                Transaction.user_id == self.user_id,
                or_(
                    Transaction.account_id == account.id,
                    Transaction.destination_account_id == account.id,
                ),
            )
        ).all()
        txns = TransactionService(self.session, self.user_id)
        doomed: dict[int, Transaction] = {}
        for txn in rows:
            doomed[txn.id] = txn
            pair = txns.pair_row(txn)
            if pair is not None:
                doomed[pair.id] = pair
        txns.delete_rows(list(doomed.values()))
        self.session.delete(account)
        self.session.commit()
        logger.info(
            f"account_deleted: account_id={account_id} transactions_removed={len(doomed)}"
        )

    def opening_balances(self) -> dict[int, int]:
        return {a.id: a.opening_balance_cents for a in self.list_all()}


class CategoryService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_all(self, category_type: Optional[CategoryType] = None) -> list[Category]:
        stmt = (
            select(Category)
            .options(selectinload(Category.subcategories))
            .where(Category.user_id == self.user_id)
            .order_by(Category.type, Category.name)
        )
        if category_type:
            stmt = stmt.where(Category.type == category_type)
        return self.session.scalars(stmt).all()

    def get(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category or category.user_id != self.user_id:
            raise ValueError("Category not found")
        return category

    def create(self, data: CategoryIn) -> Category:
        name = data.name.strip()
        existing = self.session.scalar(
            select(Category).where(
                Category.user_id == self.user_id,
                Category.type == data.type,
                func.lower(Category.name) == name.lower(),
            )
        )
        if existing:
            raise ValueError("Category already exists")
        category = Category(
            user_id=self.user_id,
            name=name,
            type=data.type,
            color=data.color or "#3B82F6",
            emoji=data.emoji or "📁",
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category

    def update(self, category_id: int, data: CategoryIn) -> Category:
        category = self.get(category_id)
        category.name = data.name.strip()
        category.type = data.type
        if data.color:
            category.color = data.color
        if data.emoji:
            category.emoji = data.emoji
        self.session.commit()
        self.session.refresh(category)
        return category

    def delete(self, category_id: int) -> None:
        category = self.get(category_id)
        self.session.execute(
            update(Transaction)
            .where(
                Transaction.user_id == self.user_id,
                Transaction.category_id == category.id,
            )
            .values(category_id=None, subcategory_id=None)
        )
        self.session.execute(
            delete(Budget).where(
                Budget.user_id == self.user_id, Budget.category_id == category.id
            )
        )
        self.session.delete(category)
        self.session.commit()

    def add_subcategory(self, data: SubcategoryIn) -> Subcategory:
        category = self.get(data.category_id)
        name = data.name.strip()
        if any(s.name.lower() == name.lower() for s in category.subcategories):
            raise ValueError("Subcategory already exists")
        sub = Subcategory(user_id=self.user_id, category_id=category.id, name=name)
        self.session.add(sub)
        self.session.commit()
        self.session.refresh(sub)
        return sub

    def delete_subcategory(self, subcategory_id: int) -> None:
        sub = self.session.get(Subcategory, subcategory_id)
        if not sub or sub.user_id != self.user_id:
            raise ValueError("Subcategory not found")
        self.session.execute(
            update(Transaction)
            .where(
                Transaction.user_id == self.user_id,
                Transaction.subcategory_id == sub.id,
            )
            .values(subcategory_id=None)
        )
        self.session.delete(sub)
        self.session.commit()


class TagService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_all(self) -> list[Tag]:
        stmt = select(Tag).where(Tag.user_id == self.user_id).order_by(Tag.name)
        return self.session.scalars(stmt).all()

    def get_or_create(self, name: str) -> Tag:
        clean_name = name.strip()
        if not clean_name:
            raise ValueError("Tag name cannot be empty")

        stmt = select(Tag).where(
            Tag.user_id == self.user_id, func.lower(Tag.name) == clean_name.lower()
        )
        existing = self.session.scalar(stmt)
        if existing:
            return existing

        tag = Tag(user_id=self.user_id, name=clean_name)
        self.session.add(tag)
        self.session.flush()
        return tag

    def create(self, data: TagIn) -> Tag:
        clean_name = data.name.strip()
        if not clean_name:
            raise ValueError("Tag name cannot be empty")

        stmt = select(Tag).where(
            Tag.user_id == self.user_id, func.lower(Tag.name) == clean_name.lower()
        )
        if self.session.scalar(stmt):
            raise ValueError("Tag already exists")

        tag = Tag(user_id=self.user_id, name=clean_name, color=data.color or "#3B82F6")
        self.session.add(tag)
        self.session.commit()
        self.session.refresh(tag)
        return tag

    def update(self, tag_id: int, data: TagIn) -> Tag:
        tag = self.session.get(Tag, tag_id)
        if not tag or tag.user_id != self.user_id:
            raise ValueError("Tag not found")

        clean_name = data.name.strip()
        if not clean_name:
            raise ValueError("Tag name cannot be empty")

        stmt = select(Tag).where(
            Tag.user_id == self.user_id,
            func.lower(Tag.name) == clean_name.lower(),
            Tag.id != tag_id,
        )
        if self.session.scalar(stmt):
            raise ValueError("Tag with this name already exists")

        tag.name = clean_name
        if data.color:
            tag.color = data.color
        self.session.commit()
        self.session.refresh(tag)
        return tag

    def delete(self, tag_id: int) -> None:
        tag = self.session.get(Tag, tag_id)
        if not tag or tag.user_id != self.user_id:
            raise ValueError("Tag not found")

        self.session.execute(
            delete(transaction_tags).where(transaction_tags.c.tag_id == tag.id)
        )
        self.session.delete(tag)
        self.session.commit()

    def links(self) -> list[tuple[int, int]]:
        stmt = (
            select(transaction_tags.c.transaction_id, transaction_tags.c.tag_id)
            .join(Transaction, Transaction.id == transaction_tags.c.transaction_id)
            .where(Transaction.user_id == self.user_id)
            .order_by(transaction_tags.c.transaction_id, transaction_tags.c.tag_id)
        )
        return [(row[0], row[1]) for row in self.session.execute(stmt)]


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def _next_sequence(self) -> int:
        current = self.session.execute(
            select(func.coalesce(func.max(Transaction.sequence), 0)).where(
                Transaction.user_id == self.user_id
            )
        ).scalar_one()
        return int(current or 0) + 1

    def _resolve_tags(self, names: list[str]) -> list[Tag]:
        tag_service = TagService(self.session, self.user_id)
        tags: list[Tag] = []
        tag_ids: set[int] = set()
        for name in names:
            tag = tag_service.get_or_create(name)
            if tag.id not in tag_ids:
                tags.append(tag)
                tag_ids.add(tag.id)
        return tags

    def _validate(self, data: TransactionIn) -> None:
        accounts = AccountService(self.session, self.user_id)
        accounts.get(data.account_id)
        if data.destination_account_id is not None:
            accounts.get(data.destination_account_id)
        if data.category_id is not None:
            category = CategoryService(self.session, self.user_id).get(
                data.category_id
            )
            if category.type.value != data.type.value:
                raise ValueError("Category type mismatch")
            if data.subcategory_id is not None and data.subcategory_id not in {
                s.id for s in category.subcategories
            }:
                raise ValueError("Subcategory does not belong to category")
        elif data.subcategory_id is not None:
            raise ValueError("Subcategory requires a category")

    def _leg(
        self,
        data: TransactionIn,
        *,
        account_id: int,
        destination_account_id: Optional[int],
        sequence: int,
    ) -> Transaction:
        return Transaction(
            user_id=self.user_id,
            account_id=account_id,
            destination_account_id=destination_account_id,
            category_id=data.category_id,
            subcategory_id=data.subcategory_id,
            description=data.description,
            amount_cents=data.amount_cents,
            type=data.type,
            date=data.date,
            sequence=sequence,
            notes=data.notes,
        )

    def _is_sequence_conflict(self, exc: IntegrityError) -> bool:
        message = str(exc.orig)
        return "uq_txn_user_sequence" in message or "transactions.sequence" in message

    def _retry_on_sequence_conflict(self, action: str, operation):
        # Another writer may take the same max(sequence) + 1 between our read
        # and our insert; the unique constraint rejects the loser, which retries.
        for attempt in range(1, SEQUENCE_ATTEMPTS + 1):
            try:
                return operation()
            except IntegrityError as exc:
                self.session.rollback()
                if not self._is_sequence_conflict(exc) or attempt == SEQUENCE_ATTEMPTS:
                    raise
                logger.warning(
                    f"sequence_conflict: user_id={self.user_id} action={action} "
                    f"attempt={attempt}"
                )

    def create(self, data: TransactionIn) -> Transaction:
        return self._retry_on_sequence_conflict("create", lambda: self._create(data))

    def _create(self, data: TransactionIn) -> Transaction:
        self._validate(data)
        tags = self._resolve_tags(data.tags) if data.tags else []
        sequence = self._next_sequence()

        if data.type != TransactionType.transfer:
            txn = self._leg(
                data,
                account_id=data.account_id,
                destination_account_id=None,
                sequence=sequence,
            )
            txn.tags = list(tags)
            self.session.add(txn)
            self.session.commit()
            self.session.refresh(txn)
            return txn

        debit = self._leg(
            data,
            account_id=data.account_id,
            destination_account_id=data.destination_account_id,
            sequence=sequence,
        )
        debit.tags = list(tags)
        self.session.add(debit)
        self.session.flush()

        credit = self._create_credit_leg(debit, tags)
        self.session.commit()
        self.session.refresh(debit)
        logger.info(
            f"transfer_created: debit_id={debit.id} credit_id={credit.id} "
            f"from={debit.account_id} to={credit.account_id} "
            f"amount_cents={debit.amount_cents}"
        )
        return debit

    def _create_credit_leg(self, debit: Transaction, tags: list[Tag]) -> Transaction:
        credit = Transaction(
            user_id=self.user_id,
            account_id=debit.destination_account_id,
            destination_account_id=debit.account_id,
            category_id=None,
            subcategory_id=None,
            description=debit.description,
            amount_cents=debit.amount_cents,
            type=TransactionType.transfer,
            date=debit.date,
            sequence=self._next_sequence(),
            transfer_pair_id=debit.id,
            notes=debit.notes,
        )
        credit.tags = list(tags)
        self.session.add(credit)
        self.session.flush()
        debit.transfer_pair_id = credit.id
        self.session.flush()
        return credit

    def get(self, transaction_id: int) -> Transaction:
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category), joinedload(Transaction.tags))
            .where(
                Transaction.user_id == self.user_id, Transaction.id == transaction_id
            )
        )
        txn = self.session.scalars(stmt).unique().one_or_none()
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def pair_row(self, txn: Transaction) -> Optional[Transaction]:
        if txn.type != TransactionType.transfer:
            return None
        if txn.transfer_pair_id is not None:
            pair = self.session.get(Transaction, txn.transfer_pair_id)
        else:
            pair = self.session.scalar(
                select(Transaction).where(
                    Transaction.user_id == self.user_id,
                    Transaction.transfer_pair_id == txn.id,
                )
            )
        if pair is None or pair.user_id != self.user_id or pair.id == txn.id:
            return None
        return pair

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        return self._retry_on_sequence_conflict(
            "update", lambda: self._update(transaction_id, data)
        )

    def _update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        self._validate(data)
        pair = self.pair_row(txn)

        if data.type == TransactionType.transfer and pair is not None:
            origin, credit = (txn, pair) if txn.sequence < pair.sequence else (pair, txn)
        else:
            origin, credit = txn, None

        origin.account_id = data.account_id
        origin.destination_account_id = data.destination_account_id
        for row in (origin, credit):
            if row is None:
                continue
            row.type = data.type
            row.description = data.description
            row.amount_cents = data.amount_cents
            row.date = data.date
            row.notes = data.notes
            row.category_id = data.category_id
            row.subcategory_id = data.subcategory_id
        if credit is not None:
            credit.account_id = data.destination_account_id
            credit.destination_account_id = data.account_id

        if data.type != TransactionType.transfer:
            txn.transfer_pair_id = None
            if pair is not None:
                self.delete_rows([pair])

        if data.tags is not None:
            txn.tags = self._resolve_tags(data.tags)
        self.session.flush()

        if data.type == TransactionType.transfer and pair is None:
            self._create_credit_leg(txn, list(txn.tags))

        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete_rows(self, rows: list[Transaction]) -> None:
        if not rows:
            return
        ids = [row.id for row in rows]
        self.session.execute(
            update(Transaction)
            .where(Transaction.transfer_pair_id.in_(ids))
            .values(transfer_pair_id=None)
            .execution_options(synchronize_session="fetch")
        )
        for row in rows:
            row.tags = []
        self.session.flush()
        for row in rows:
            self.session.delete(row)
        self.session.flush()

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        pair = self.pair_row(txn)
        self.delete_rows([txn] if pair is None else [txn, pair])
        self.session.commit()

    def list(self, filters: Optional[TransactionFilters] = None) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == self.user_id)
            .order_by(Transaction.date.desc(), Transaction.sequence.desc())
        )
        if filters.start:
            stmt = stmt.where(Transaction.date >= filters.start)
        if filters.end:
            stmt = stmt.where(Transaction.date <= filters.end)
        if filters.account_ids:
            stmt = stmt.where(Transaction.account_id.in_(filters.account_ids))
        if filters.category_ids:
            stmt = stmt.where(Transaction.category_id.in_(filters.category_ids))
        if filters.subcategory_ids:
            stmt = stmt.where(Transaction.subcategory_id.in_(filters.subcategory_ids))
        if filters.tag_ids:
            stmt = stmt.where(Transaction.tags.any(Tag.id.in_(filters.tag_ids)))
        return self.session.scalars(stmt).all()

    def entries(self, filters: Optional[TransactionFilters] = None) -> list[LedgerEntry]:
        rows = self.list(filters)
        tag_ids: dict[int, set[int]] = defaultdict(set)
        for transaction_id, tag_id in TagService(self.session, self.user_id).links():
            tag_ids[transaction_id].add(tag_id)
        return [
            entry_from_row(txn, tag_ids=frozenset(tag_ids.get(txn.id, ())))
            for txn in rows
        ]

    def all_entries(self) -> list[LedgerEntry]:
        return self.entries(None)


class BudgetService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_for_month(self, month: date) -> list[Budget]:
        stmt = (
            select(Budget)
            .options(joinedload(Budget.category))
            .where(Budget.user_id == self.user_id, Budget.month == month_start(month))
            .order_by(Budget.id)
        )
        return self.session.scalars(stmt).all()

    def upsert(self, data: BudgetIn) -> Budget:
        CategoryService(self.session, self.user_id).get(data.category_id)
        month = month_start(data.month)
        existing = self.session.scalar(
            select(Budget)
            .where(
                Budget.user_id == self.user_id,
                Budget.category_id == data.category_id,
                Budget.month == month,
            )
            .order_by(Budget.id)
            .limit(1)
        )
        if existing:
            existing.amount_cents = data.amount_cents
            self.session.commit()
            self.session.refresh(existing)
            return existing

        budget = Budget(
            user_id=self.user_id,
            category_id=data.category_id,
            amount_cents=data.amount_cents,
            month=month,
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def delete(self, budget_id: int) -> None:
        budget = self.session.get(Budget, budget_id)
        if not budget or budget.user_id != self.user_id:
            raise ValueError("Budget not found")
        self.session.delete(budget)
        self.session.commit()


class ReportService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.accounts = AccountService(session, self.user_id)
        self.transactions = TransactionService(session, self.user_id)

    def _fetch(self, what: str, loader):
        try:
            return loader()
        except SQLAlchemyError as exc:
            logger.error(f"ledger_fetch_failed: user_id={self.user_id} what={what}")
            raise LedgerUnavailable(f"Could not load {what}") from exc

    def _report_entries(self, filters: TransactionFilters) -> list[LedgerEntry]:
        entries = self._fetch(
            "transactions", lambda: self.transactions.entries(filters.without_tags())
        )
        return filter_by_tags(entries, filters.tag_ids)

    def _account_names(self) -> dict[int, str]:
        accounts = self._fetch("accounts", self.accounts.list_all)
        return {a.id: a.name for a in accounts}

    def transaction_rows(self, filters: TransactionFilters) -> list[dict[str, object]]:
        all_entries = self._fetch("transactions", self.transactions.all_entries)
        candidates = self._fetch(
            "transactions",
            lambda: self.transactions.entries(filters.without_accounts()),
        )
        names = self._account_names()
        categories = {
            c.id: c
            for c in self._fetch(
                "categories", CategoryService(self.session, self.user_id).list_all
            )
        }
        tags = {
            t.id: t
            for t in self._fetch("tags", TagService(self.session, self.user_id).list_all)
        }
        rows = resolve_display_rows(candidates, all_entries, filters.account_ids)
        return [self._row_payload(row, names, categories, tags) for row in rows]

    @staticmethod
    def _row_payload(
        row: DisplayRow,
        names: dict[int, str],
        categories: dict[int, Category],
        tags: dict[int, Tag],
    ) -> dict[str, object]:
        entry = row.entry
        category = categories.get(entry.category_id) if entry.category_id else None
        subcategory = None
        if category is not None and entry.subcategory_id is not None:
            subcategory = next(
                (s.name for s in category.subcategories if s.id == entry.subcategory_id),
                None,
            )
        payload: dict[str, object] = {
            "id": entry.id,
            "date": entry.date.isoformat(),
            "type": entry.type.value,
            "description": entry.description,
            "amount_cents": entry.amount_cents,
            "account_id": entry.account_id,
            "account": names.get(entry.account_id, "N/A"),
            "category": category.name if category else None,
            "subcategory": subcategory,
            "notes": entry.notes,
            "tags": [
                {"id": tags[t].id, "name": tags[t].name, "color": tags[t].color}
                for t in sorted(row.tag_ids)
                if t in tags
            ],
            "is_credit": row.is_credit,
            "unpaired": row.unpaired,
            "label": None,
        }
        if row.is_transfer:
            source = names.get(row.from_account_id, "N/A")
            target = names.get(row.to_account_id, "N/A")
            payload.update(
                {
                    "from_account_id": row.from_account_id,
                    "to_account_id": row.to_account_id,
                    "label": f"From {source} to {target}",
                }
            )
        return payload

    def daily_balances(
        self, filters: TransactionFilters, *, limit: Optional[int] = None
    ) -> list[dict[str, object]]:
        entries = self._fetch("transactions", self.transactions.all_entries)
        openings = self._fetch("accounts", self.accounts.opening_balances)
        names = self._account_names()
        result = replay(entries, openings)
        snapshots = filter_snapshots(
            result.snapshots,
            start=filters.start,
            end=filters.end,
            account_ids=filters.account_ids,
            newest_first=True,
        )
        if limit is not None:
            snapshots = snapshots[:limit]
        return [
            {
                "date": snap.date.isoformat(),
                "account_id": snap.account_id,
                "account": names.get(snap.account_id, "N/A"),
                "balance_cents": snap.balance_cents,
            }
            for snap in snapshots
        ]

    def dashboard(self, today: Optional[date] = None) -> dict[str, object]:
        today = today or local_today()
        accounts = self._fetch("accounts", self.accounts.list_all)
        entries = self._fetch("transactions", self.transactions.all_entries)
        result = current_balances(
            entries, {a.id: a.opening_balance_cents for a in accounts}, today
        )
        items = [
            {
                "id": a.id,
                "name": a.name,
                "type": a.type.value,
                "type_label": ACCOUNT_TYPE_LABELS[a.type],
                "institution": a.institution,
                "opening_balance_cents": a.opening_balance_cents,
                "balance_cents": result.balance_of(a.id),
            }
            for a in accounts
        ]
        return {
            "as_of": today.isoformat(),
            "accounts": items,
            "total_cents": sum(item["balance_cents"] for item in items),
        }

    def monthly_summary(self, filters: TransactionFilters) -> list[dict[str, object]]:
        entries = self._report_entries(filters)
        return [
            {
                "month": row.month,
                "income_cents": row.income_cents,
                "expense_cents": row.expense_cents,
                "balance_cents": row.net_cents,
            }
            for row in monthly_totals(entries)
        ]

    def budget_report(
        self, month: date, filters: Optional[TransactionFilters] = None
    ) -> list[dict[str, object]]:
        month = month_start(month)
        filters = filters or TransactionFilters()
        budgets = self._fetch(
            "budgets", lambda: BudgetService(self.session, self.user_id).list_for_month(month)
        )
        entries = self._report_entries(filters)
        balances = category_balances(entries, month)
        report: list[dict[str, object]] = []
        for budget in budgets:
            progress = budget_progress(
                budget.category_id,
                month,
                budget.amount_cents,
                balances.get(budget.category_id, 0),
            )
            report.append(
                {
                    "id": budget.id,
                    "category_id": budget.category_id,
                    "category": budget.category.name if budget.category else "N/A",
                    "month": month.isoformat(),
                    "target_cents": progress.target_cents,
                    "balance_cents": progress.balance_cents,
                    "percentage": progress.percentage,
                    "bar_width": progress.bar_width,
                    "has_target": progress.has_target,
                    "on_track": progress.on_track,
                }
            )
        return report

    def category_breakdown(
        self,
        month: Optional[date],
        filters: Optional[TransactionFilters] = None,
        category_type: CategoryType = CategoryType.expense,
    ) -> list[dict[str, object]]:
        filters = filters or TransactionFilters()
        entries = self._report_entries(filters)
        categories = {
            c.id: c
            for c in self._fetch(
                "categories", CategoryService(self.session, self.user_id).list_all
            )
        }
        return [
            {
                "category_id": share.category_id,
                "category": categories[share.category_id].name
                if share.category_id in categories
                else "N/A",
                "color": categories[share.category_id].color
                if share.category_id in categories
                else None,
                "total_cents": share.total_cents,
                "share": share.share,
            }
            for share in category_breakdown(
                entries, month_start(month) if month else None, category_type
            )
        ]
