from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models import AccountType, CategoryType, TransactionType


class AccountIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    opening_balance_cents: int = 0
    institution: Optional[str] = Field(default=None, max_length=100)


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType
    color: Optional[str] = Field(default=None, max_length=7)
    emoji: Optional[str] = Field(default=None, max_length=16)


class SubcategoryIn(BaseModel):
    category_id: int
    name: str = Field(..., min_length=1, max_length=100)


class TagIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=9)


class TransactionIn(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., ge=0)
    type: TransactionType
    date: date
    account_id: int
    destination_account_id: Optional[int] = None
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    notes: Optional[str] = None
    # None leaves the tags of an edited row untouched.
    tags: Optional[list[str]] = None

    @model_validator(mode="after")
    def _check_transfer_destination(self) -> "TransactionIn":
        if self.type == TransactionType.transfer:
            if self.destination_account_id is None:
                raise ValueError("Transfers require a destination account")
            if self.destination_account_id == self.account_id:
                raise ValueError("Transfer destination must differ from origin")
            # Transfers are uncategorized.
            self.category_id = None
            self.subcategory_id = None
        elif self.destination_account_id is not None:
            raise ValueError("Only transfers may have a destination account")
        return self


class BudgetIn(BaseModel):
    category_id: int
    amount_cents: int
    month: date

    @field_validator("month")
    @classmethod
    def _first_of_month(cls, value: date) -> date:
        return value.replace(day=1)
