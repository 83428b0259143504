from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from database import Base
from models import (
    AccountType,
    Budget,
    CategoryType,
    Subcategory,
    Transaction,
    TransactionType,
)
from schemas import AccountIn, BudgetIn, CategoryIn, SubcategoryIn, TransactionIn
from services import (
    AccountService,
    BudgetService,
    CategoryService,
    TagService,
    TransactionService,
)


def _accounts(session: Session):
    accounts = AccountService(session)
    checking = accounts.create(
        AccountIn(name="Checking", type=AccountType.checking, opening_balance_cents=100_000)
    )
    savings = accounts.create(AccountIn(name="Savings", type=AccountType.investment))
    return checking, savings


def _transfer(checking_id: int, savings_id: int, **overrides) -> TransactionIn:
    values = dict(
        description="Monthly savings",
        amount_cents=20_000,
        type=TransactionType.transfer,
        date=date(2024, 1, 1),
        account_id=checking_id,
        destination_account_id=savings_id,
    )
    values.update(overrides)
    return TransactionIn(**values)


def test_transfer_creates_mirrored_pair() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, savings = _accounts(session)

        debit = TransactionService(session).create(
            _transfer(checking.id, savings.id, tags=["Goals"])
        )
        credit = session.get(Transaction, debit.transfer_pair_id)

        assert credit is not None
        assert credit.transfer_pair_id == debit.id
        assert credit.account_id == savings.id
        assert credit.destination_account_id == checking.id
        assert credit.amount_cents == debit.amount_cents
        assert credit.sequence == debit.sequence + 1
        assert credit.category_id is None
        assert [t.name for t in debit.tags] == ["Goals"]
        assert [t.name for t in credit.tags] == ["Goals"]


def test_deleting_either_leg_removes_both() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, savings = _accounts(session)
        debit = TransactionService(session).create(
            _transfer(checking.id, savings.id, tags=["Goals"])
        )

        TransactionService(session).delete(debit.transfer_pair_id)

        assert session.scalars(select(Transaction)).all() == []
        assert TagService(session).links() == []


def test_editing_credit_leg_mirrors_origin() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, savings = _accounts(session)
        wallet = AccountService(session).create(
            AccountIn(name="Wallet", type=AccountType.checking)
        )
        service = TransactionService(session)
        debit = service.create(_transfer(checking.id, savings.id))
        credit_id = debit.transfer_pair_id

        service.update(
            credit_id,
            _transfer(checking.id, wallet.id, amount_cents=15_000, description="Cash"),
        )

        origin = service.get(debit.id)
        credit = service.get(credit_id)
        assert origin.account_id == checking.id
        assert origin.destination_account_id == wallet.id
        assert credit.account_id == wallet.id
        assert credit.destination_account_id == checking.id
        assert origin.amount_cents == credit.amount_cents == 15_000
        assert origin.description == credit.description == "Cash"


def test_converting_transfer_to_expense_drops_partner() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, savings = _accounts(session)
        food = CategoryService(session).create(
            CategoryIn(name="Food", type=CategoryType.expense)
        )
        service = TransactionService(session)
        debit = service.create(_transfer(checking.id, savings.id))

        updated = service.update(
            debit.id,
            TransactionIn(
                description="Groceries",
                amount_cents=4_500,
                type=TransactionType.expense,
                date=date(2024, 1, 1),
                account_id=checking.id,
                category_id=food.id,
            ),
        )

        rows = session.scalars(select(Transaction)).all()
        assert [r.id for r in rows] == [updated.id]
        assert updated.transfer_pair_id is None
        assert updated.destination_account_id is None


def test_converting_expense_to_transfer_creates_partner() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, savings = _accounts(session)
        service = TransactionService(session)
        txn = service.create(
            TransactionIn(
                description="Misc",
                amount_cents=1_000,
                type=TransactionType.expense,
                date=date(2024, 1, 2),
                account_id=checking.id,
            )
        )

        updated = service.update(txn.id, _transfer(checking.id, savings.id))

        partner = service.pair_row(updated)
        assert partner is not None
        assert partner.account_id == savings.id
        assert partner.sequence > updated.sequence


def test_sequence_increases_per_insert() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, _ = _accounts(session)
        service = TransactionService(session)
        rows = [
            service.create(
                TransactionIn(
                    description=f"Row {i}",
                    amount_cents=100,
                    type=TransactionType.income,
                    date=date(2024, 1, 1),
                    account_id=checking.id,
                )
            )
            for i in range(3)
        ]

        assert [r.sequence for r in rows] == [1, 2, 3]


def test_category_type_must_match_transaction() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, _ = _accounts(session)
        salary = CategoryService(session).create(
            CategoryIn(name="Salary", type=CategoryType.income)
        )

        with pytest.raises(ValueError):
            TransactionService(session).create(
                TransactionIn(
                    description="Lunch",
                    amount_cents=1_299,
                    type=TransactionType.expense,
                    date=date(2024, 1, 5),
                    account_id=checking.id,
                    category_id=salary.id,
                )
            )


def test_subcategory_must_belong_to_category() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, _ = _accounts(session)
        categories = CategoryService(session)
        food = categories.create(CategoryIn(name="Food", type=CategoryType.expense))
        home = categories.create(CategoryIn(name="Home", type=CategoryType.expense))
        repairs = categories.add_subcategory(
            SubcategoryIn(category_id=home.id, name="Repairs")
        )

        with pytest.raises(ValueError):
            TransactionService(session).create(
                TransactionIn(
                    description="Bread",
                    amount_cents=500,
                    type=TransactionType.expense,
                    date=date(2024, 1, 5),
                    account_id=checking.id,
                    category_id=food.id,
                    subcategory_id=repairs.id,
                )
            )


def test_deleting_account_removes_its_transfers() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, savings = _accounts(session)
        service = TransactionService(session)
        service.create(_transfer(checking.id, savings.id))
        kept = service.create(
            TransactionIn(
                description="Interest",
                amount_cents=300,
                type=TransactionType.income,
                date=date(2024, 1, 31),
                account_id=savings.id,
            )
        )

        AccountService(session).delete(checking.id)

        rows = session.scalars(select(Transaction)).all()
        assert [r.id for r in rows] == [kept.id]
        assert [a.name for a in AccountService(session).list_all()] == ["Savings"]


def test_deleting_category_uncategorizes_transactions() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, _ = _accounts(session)
        categories = CategoryService(session)
        food = categories.create(CategoryIn(name="Food", type=CategoryType.expense))
        snacks = categories.add_subcategory(
            SubcategoryIn(category_id=food.id, name="Snacks")
        )
        txn = TransactionService(session).create(
            TransactionIn(
                description="Chips",
                amount_cents=700,
                type=TransactionType.expense,
                date=date(2024, 1, 5),
                account_id=checking.id,
                category_id=food.id,
                subcategory_id=snacks.id,
            )
        )
        BudgetService(session).upsert(
            BudgetIn(category_id=food.id, amount_cents=-50_000, month=date(2024, 1, 1))
        )

        categories.delete(food.id)

        refreshed = TransactionService(session).get(txn.id)
        assert refreshed.category_id is None
        assert refreshed.subcategory_id is None
        assert session.scalars(select(Budget)).all() == []
        assert session.scalars(select(Subcategory)).all() == []


def test_duplicate_category_name_is_rejected() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        categories = CategoryService(session)
        categories.create(CategoryIn(name="Food", type=CategoryType.expense))

        with pytest.raises(ValueError):
            categories.create(CategoryIn(name=" food ", type=CategoryType.expense))


def test_budget_upsert_replaces_target_for_month() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        food = CategoryService(session).create(
            CategoryIn(name="Food", type=CategoryType.expense)
        )
        budgets = BudgetService(session)

        first = budgets.upsert(
            BudgetIn(category_id=food.id, amount_cents=-40_000, month=date(2024, 1, 15))
        )
        second = budgets.upsert(
            BudgetIn(category_id=food.id, amount_cents=-45_000, month=date(2024, 1, 1))
        )

        assert first.id == second.id
        assert second.month == date(2024, 1, 1)
        assert [b.amount_cents for b in budgets.list_for_month(date(2024, 1, 1))] == [
            -45_000
        ]


def test_concurrent_insert_reallocates_sequence(tmp_path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)

    with Session(engine) as first, Session(engine) as second:
        checking, _ = _accounts(first)
        salary = TransactionIn(
            description="Salary",
            amount_cents=500,
            type=TransactionType.income,
            date=date(2024, 1, 5),
            account_id=checking.id,
        )
        slow = TransactionService(first)
        fresh = slow._next_sequence
        stale = [fresh()]

        # The other writer commits after our max(sequence) read.
        other = TransactionService(second).create(salary)
        slow._next_sequence = lambda: stale.pop() if stale else fresh()

        txn = slow.create(salary)

        assert other.sequence == 1
        assert txn.sequence == 2
        assert len(first.scalars(select(Transaction)).all()) == 2


def test_update_without_tags_keeps_existing_tags() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, _ = _accounts(session)
        service = TransactionService(session)
        payload = dict(
            description="Dinner",
            amount_cents=4_000,
            type=TransactionType.expense,
            date=date(2024, 1, 5),
            account_id=checking.id,
        )
        txn = service.create(TransactionIn(**payload, tags=["Dining"]))

        service.update(txn.id, TransactionIn(**{**payload, "amount_cents": 4_500}))
        assert [t.name for t in service.get(txn.id).tags] == ["Dining"]

        service.update(txn.id, TransactionIn(**payload, tags=[]))
        assert service.get(txn.id).tags == []


def test_entries_take_tags_from_links() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        checking, savings = _accounts(session)
        debit = TransactionService(session).create(
            _transfer(checking.id, savings.id, tags=["Goals", "Yearly"])
        )
        links = TagService(session).links()

        entries = {e.id: e for e in TransactionService(session).all_entries()}

        assert len(links) == 4
        expected = {tag.id for tag in debit.tags}
        assert entries[debit.id].tag_ids == expected
        assert entries[debit.transfer_pair_id].tag_ids == expected
