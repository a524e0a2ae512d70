"""Ledger Core - balance, settlement and recurrence engines for shared finances."""

__version__ = "0.1.0"

from .balances import (
    calculate_balances,
    calculate_total_payables,
    calculate_total_receivables,
)
from .config import Settings, load_settings
from .exceptions import DivisionByZero, LedgerError
from .models import (
    Account,
    Participant,
    SettlementPlan,
    SharedSplit,
    Transaction,
    TransactionType,
)
from .recurrence import process_recurring_transactions
from .settlement import calculate_trip_debts

__all__ = [
    "Settings",
    "load_settings",
    "DivisionByZero",
    "LedgerError",
    "Account",
    "Participant",
    "SettlementPlan",
    "SharedSplit",
    "Transaction",
    "TransactionType",
    "calculate_balances",
    "calculate_total_payables",
    "calculate_total_receivables",
    "calculate_trip_debts",
    "process_recurring_transactions",
]
