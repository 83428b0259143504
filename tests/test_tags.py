from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import AccountType, CategoryType, TransactionType
from schemas import AccountIn, CategoryIn, TagIn, TransactionIn
from services import AccountService, CategoryService, TagService, TransactionService


def _lunch(session: Session, tags: list[str]):
    account = AccountService(session).create(
        AccountIn(name="Checking", type=AccountType.checking)
    )
    category = CategoryService(session).create(
        CategoryIn(name="Food", type=CategoryType.expense)
    )
    return TransactionService(session).create(
        TransactionIn(
            date=date(2025, 1, 5),
            type=TransactionType.expense,
            amount_cents=1299,
            account_id=account.id,
            category_id=category.id,
            description="Lunch",
            tags=tags,
        )
    )


def test_deleting_used_tag_clears_associations() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        txn = _lunch(session, ["Dining"])
        tag = TagService(session).list_all()[0]

        TagService(session).delete(tag.id)

        txn_after = TransactionService(session).get(txn.id)
        assert txn_after.tags == []
        assert TagService(session).links() == []


def test_transaction_tag_inputs_are_deduplicated_case_insensitive() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        txn = _lunch(session, ["Dining", "dining", " DINING "])

        assert len(txn.tags) == 1
        assert txn.tags[0].name == "Dining"


def test_renaming_tag_to_existing_name_is_rejected() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        tags = TagService(session)
        tags.create(TagIn(name="Travel"))
        work = tags.create(TagIn(name="Work", color="#10B981"))

        with pytest.raises(ValueError):
            tags.update(work.id, TagIn(name="travel"))

        renamed = tags.update(work.id, TagIn(name="Office"))
        assert renamed.name == "Office"
        assert renamed.color == "#10B981"
