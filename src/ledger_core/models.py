"""Pydantic domain models for Ledger Core."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator

# The ledger owner is a reserved participant id; "me" is accepted on payer_id
OWNER_ID = "user"
OWNER_ALIASES = frozenset({OWNER_ID, "me"})


def is_owner(participant_id: str | None) -> bool:
    """Return True when the id refers to the ledger owner (or is unset)."""
    return not participant_id or participant_id in OWNER_ALIASES


def _coerce_date(value):
    # Persisted rows carry either YYYY-MM-DD or a full ISO timestamp
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


# ============================================================================
# Ledger Models
# ============================================================================


class TransactionType(str, Enum):
    """Kind of ledger entry."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class Frequency(str, Enum):
    """Recurrence period of a recurring template."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class SharedSplit(BaseModel):
    """One participant's allocation of a shared expense."""

    member_id: str
    assigned_amount: Decimal
    percentage: Decimal | None = None
    is_settled: bool = False
    settled_at: date | None = None

    @field_validator("settled_at", mode="before")
    @classmethod
    def coerce_dates(cls, value):
        return _coerce_date(value)


class ExplicitSplit(BaseModel):
    """Sharing variant with explicit per-member allocations."""

    allocations: list[SharedSplit]


class ImplicitEvenSplit(BaseModel):
    """Legacy sharing variant: even division among every trip participant."""

    pass


class Transaction(BaseModel):
    """A ledger transaction.

    Once persisted a transaction is an immutable fact; only ``deleted``,
    the settlement flags and ``last_generated`` change in place. The engines
    never mutate transactions, they return copies.
    """

    id: str | None = None  # None for instances not yet persisted
    type: TransactionType
    amount: Decimal = Field(ge=0)
    date: date
    description: str = ""
    category: str | None = None
    currency: str | None = None
    deleted: bool = False

    # Source/holder and transfer destination
    account_id: str | None = None
    destination_account_id: str | None = None
    destination_amount: Decimal | None = None
    exchange_rate: Decimal | None = None
    trip_id: str | None = None

    # Sharing
    is_shared: bool = False
    payer_id: str | None = None  # None or "me" = ledger owner
    shared_with: list[SharedSplit] = Field(default_factory=list)
    is_refund: bool = False
    is_settled: bool = False
    settled_at: date | None = None

    # Recurrence
    is_recurring: bool = False
    frequency: Frequency | None = None
    recurrence_day: int | None = Field(default=None, ge=1, le=31)
    last_generated: date | None = None

    # Installment series
    is_installment: bool = False
    series_id: str | None = None
    current_installment: int | None = None
    total_installments: int | None = None

    @field_validator("date", "settled_at", "last_generated", mode="before")
    @classmethod
    def coerce_dates(cls, value):
        return _coerce_date(value)

    @property
    def owner_paid(self) -> bool:
        """True when the ledger owner fronted the money."""
        return is_owner(self.payer_id)

    def split_mode(self) -> ExplicitSplit | ImplicitEvenSplit | None:
        """Resolve how this transaction is shared, if at all."""
        if self.shared_with:
            return ExplicitSplit(allocations=self.shared_with)
        if self.is_shared:
            return ImplicitEvenSplit()
        return None


class Account(BaseModel):
    """A ledger account. ``balance`` is derived by the balance engine."""

    id: str
    name: str = ""
    type: str | None = None
    initial_balance: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    currency: str = "BRL"


class Participant(BaseModel):
    """A person taking part in shared expenses."""

    id: str
    name: str


# ============================================================================
# Engine Results
# ============================================================================


class SplitValidation(BaseModel):
    """Outcome of checking split allocations against a total."""

    valid: bool
    difference: Decimal  # sum(splits) - total
    normalized: list[Decimal] | None = None


class SumValidation(BaseModel):
    """Outcome of checking a list of values against an expected total."""

    valid: bool
    actual_sum: Decimal
    difference: Decimal


class SettlementInstruction(BaseModel):
    """A single payment: ``debtor_id`` pays ``creditor_id`` ``amount``."""

    debtor_id: str
    creditor_id: str
    amount: Decimal
    debtor_name: str
    creditor_name: str


class SettlementPlan(BaseModel):
    """Payments that bring every participant's net position to zero."""

    instructions: list[SettlementInstruction] = Field(default_factory=list)
    currency: str = "BRL"

    @property
    def is_settled(self) -> bool:
        return not self.instructions


class RecurrenceResult(BaseModel):
    """New instances and template updates proposed by the recurrence engine.

    The caller owns persistence: ``new_transactions`` have no id yet and
    ``updated_templates`` carry the advanced ``last_generated`` marker.
    """

    new_transactions: list[Transaction] = Field(default_factory=list)
    updated_templates: list[Transaction] = Field(default_factory=list)


class LedgerSnapshot(BaseModel):
    """An in-memory snapshot handed to the engines by the persistence layer."""

    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    participants: list[Participant] = Field(default_factory=list)
