"""
Core Data Models for Financely

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for the document store and CSV files

DESIGN DECISION: Transactions are immutable once created.
There is no update path anywhere in the app, so the models are frozen.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
)


# Field below is also called "date"; keep a module-level name for the type.
TransactionDate = date


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow. The sign of an amount is implied by this."""
    INCOME = "income"
    EXPENSE = "expense"


class TypeFilter(str, Enum):
    """Type filter offered by the transaction table."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"

    def matches(self, transaction_type: TransactionType) -> bool:
        if self is TypeFilter.ALL:
            return True
        return self.value == transaction_type.value


class SortColumn(str, Enum):
    """Sortable columns of the transaction table."""
    NAME = "name"
    AMOUNT = "amount"
    DATE = "date"


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class NewTransaction(BaseModel):
    """
    The user-supplied part of a transaction.

    Produced by the add-transaction form and by CSV import.
    Both go through the same creation path.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was for (e.g. Salary, Groceries)"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount; sign comes from type"
    )
    type: TransactionType = Field(
        ...,
        description="income or expense"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-form category (case-sensitive)"
    )
    date: TransactionDate = Field(
        ...,
        description="Calendar date of the transaction (no time component)"
    )


class Transaction(NewTransaction):
    """
    A stored transaction, as delivered by the live subscription.

    id and created_at are assigned by the store. user_id scopes the record
    to exactly one user.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned identifier"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner's identifier"
    )
    # Stored data is taken as-is; negatives only come from other writers
    amount: Decimal = Field(
        ...,
        description="Amount as stored; may be negative in legacy records"
    )
    created_at: datetime = Field(
        ...,
        description="Insertion timestamp, used for default ordering"
    )


class UserIdentity(BaseModel):
    """The authenticated user, as reported by the auth provider."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def greeting_name(self) -> str:
        """Name used in the dashboard welcome line."""
        return self.display_name or "User"

    @property
    def header_name(self) -> str:
        """Name shown in the header next to the logout button."""
        return self.display_name or self.email or self.uid


# =============================================================================
# AGGREGATE MODELS (derived, never persisted)
# =============================================================================

class MonthlyTotals(BaseModel):
    """Income and expense for one calendar month."""
    model_config = ConfigDict(frozen=True)

    year: int
    month_number: int = Field(..., ge=1, le=12)
    month: str = Field(..., description="Short month label, e.g. 'Jan'")
    income: Decimal = Decimal("0.00")
    expense: Decimal = Decimal("0.00")

    @computed_field
    @property
    def label(self) -> str:
        return f"{self.month} {self.year}"


class CategoryTotal(BaseModel):
    """Expense total for one category."""
    model_config = ConfigDict(frozen=True)

    category: str
    total: Decimal


class DashboardSummary(BaseModel):
    """Everything the dashboard renders, derived from one snapshot."""
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0.00")
    total_expense: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")
    income_count: int = 0
    expense_count: int = 0
    monthly: list[MonthlyTotals] = Field(default_factory=list)
    categories: list[CategoryTotal] = Field(default_factory=list)
