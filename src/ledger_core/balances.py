"""Account balance derivation from a transaction log.

All functions here are pure: they read caller-owned snapshots and return
freshly computed values without touching the inputs.
"""

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from .models import Account, Transaction, TransactionType, is_owner
from .precision import Money, multiply, round_money, subtract, sum_money

logger = logging.getLogger(__name__)


class AccountArena:
    """Owned copies of accounts, addressed by id through a side index.

    Every balance change goes through ``post``; callers never hold a mutable
    reference to an account while iterating transactions.
    """

    def __init__(self, accounts: Iterable[Account]):
        self._accounts: list[Account] = []
        self._index: dict[str, int] = {}
        for account in accounts:
            self._index[account.id] = len(self._accounts)
            self._accounts.append(
                account.model_copy(update={"balance": account.initial_balance})
            )

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._index

    def get(self, account_id: str | None) -> Account | None:
        if account_id is None or account_id not in self._index:
            return None
        return self._accounts[self._index[account_id]]

    def post(self, account_id: str, change: Money) -> None:
        """Add ``change`` (signed) to an account balance."""
        account = self._accounts[self._index[account_id]]
        account.balance = sum_money([account.balance, change])

    def accounts(self) -> list[Account]:
        return list(self._accounts)


def _active(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if not t.deleted]


def calculate_balances(
    accounts: list[Account],
    transactions: list[Transaction],
    cutoff_date: date | None = None,
) -> list[Account]:
    """
    Derive every account's balance from its initial balance and the log.

    Transactions are applied in chronological order. With ``cutoff_date`` the
    result reconstructs balances as they stood at the end of that day.

    Args:
        accounts: Accounts with ``initial_balance`` set
        transactions: Full transaction log (deleted rows are ignored)
        cutoff_date: Optional last day to include

    Returns:
        New account objects with ``balance`` populated, in input order
    """
    arena = AccountArena(accounts)

    eligible = sorted(_active(transactions), key=lambda t: t.date)
    if cutoff_date is not None:
        eligible = [t for t in eligible if t.date <= cutoff_date]

    for tx in eligible:
        _apply_transaction(arena, tx)

    return arena.accounts()


def _apply_transaction(arena: AccountArena, tx: Transaction) -> None:
    amount = tx.amount
    source = arena.get(tx.account_id)

    if source is None and tx.account_id and tx.owner_paid:
        logger.debug(f"Source account {tx.account_id} not found for {tx.id}")

    if source is not None:
        if tx.type == TransactionType.EXPENSE:
            # Someone else paid: the obligation is a payable, not a cash movement
            if tx.owner_paid:
                arena.post(source.id, amount if tx.is_refund else -amount)
        elif tx.type == TransactionType.INCOME:
            arena.post(source.id, -amount if tx.is_refund else amount)
        elif tx.type == TransactionType.TRANSFER:
            arena.post(source.id, -amount)

    if tx.type != TransactionType.TRANSFER:
        return

    destination = arena.get(tx.destination_account_id)
    if destination is None:
        logger.warning(
            f"Transfer {tx.id} has no resolvable destination "
            f"({tx.destination_account_id!r}); reverting source debit"
        )
        if source is not None:
            arena.post(source.id, amount)
        return

    arena.post(destination.id, _incoming_amount(tx, source, destination))


def _incoming_amount(
    tx: Transaction, source: Account | None, destination: Account
) -> Decimal:
    """Amount credited to a transfer's destination, in its currency."""
    if tx.destination_amount is not None and tx.destination_amount > 0:
        return round_money(tx.destination_amount)

    if source is not None and source.currency != destination.currency:
        # 1:1 keeps the asset on the books rather than losing it
        logger.warning(
            f"Transfer {tx.id} crosses {source.currency}->{destination.currency} "
            f"without destination_amount; crediting 1:1"
        )
    return round_money(tx.amount)


def calculate_total_receivables(
    transactions: list[Transaction], base_currency: str = "BRL"
) -> Decimal:
    """
    Total owed TO the owner for shared expenses the owner paid.

    Unsettled split amounts are converted with the transaction's
    ``exchange_rate`` when one is present. Transactions without an account
    are skipped as orphans.

    Args:
        transactions: Full transaction log
        base_currency: Ledger base currency; only used for diagnostics

    Returns:
        Receivables in the base currency
    """
    total = Decimal("0")

    for t in _active(transactions):
        if not t.account_id:
            continue
        if t.type != TransactionType.EXPENSE or not t.is_shared or not t.owner_paid:
            continue

        for split in t.shared_with:
            # The owner cannot owe themselves
            if split.is_settled or is_owner(split.member_id):
                continue
            value = split.assigned_amount
            if t.exchange_rate is not None and t.exchange_rate > 0:
                value = multiply(value, t.exchange_rate)
            elif t.currency and t.currency != base_currency:
                logger.debug(
                    f"Receivable on {t.id} is in {t.currency} without an "
                    f"exchange rate; counted at face value"
                )
            total = sum_money([total, value])

    return total


def calculate_total_payables(
    transactions: list[Transaction], base_currency: str = "BRL"
) -> Decimal:
    """
    Total the owner OWES for shared expenses someone else paid.

    On these mirror transactions ``amount`` already holds the owner's portion.
    Transactions in a currency other than ``base_currency`` are left out of
    the aggregate.
    """
    total = Decimal("0")

    for t in _active(transactions):
        if t.type != TransactionType.EXPENSE or not t.is_shared or t.owner_paid:
            continue
        if t.currency and t.currency != base_currency:
            continue
        if t.is_settled:
            continue
        total = sum_money([total, t.amount])

    return total


def calculate_effective_value(t: Transaction) -> Decimal:
    """
    The owner's real economic cost of a transaction.

    - Not a shared expense: the full amount.
    - Owner paid: amount minus everyone else's splits.
    - Someone else paid: the owner's remaining share, never negative.

    Splits that add up to more than the amount are treated as corrupt and the
    full amount is returned.
    """
    shared = t.is_shared or bool(t.shared_with) or not t.owner_paid
    if t.type != TransactionType.EXPENSE or not shared:
        return round_money(t.amount)

    others = [s for s in t.shared_with if not is_owner(s.member_id)]
    splits_total = sum_money([s.assigned_amount for s in others])
    if splits_total > t.amount:
        logger.warning(
            f"Splits on {t.id} total {splits_total}, more than amount {t.amount}"
        )
        return round_money(t.amount)

    return max(Decimal("0.00"), subtract(t.amount, splits_total))


def calculate_net_worth(
    accounts: list[Account],
    transactions: list[Transaction],
    base_currency: str = "BRL",
) -> Decimal:
    """Base-currency balances plus receivables minus payables.

    ``accounts`` must already carry derived balances (see
    :func:`calculate_balances`).
    """
    cash = sum_money([a.balance for a in accounts if a.currency == base_currency])
    receivables = calculate_total_receivables(transactions, base_currency)
    payables = calculate_total_payables(transactions, base_currency)
    return subtract(sum_money([cash, receivables]), payables)


def check_data_consistency(
    accounts: list[Account], transactions: list[Transaction]
) -> list[str]:
    """
    Report integrity problems in a snapshot without changing it.

    Returns:
        One human-readable line per issue found, empty when consistent
    """
    issues: list[str] = []
    by_id = {a.id: a for a in accounts}

    for t in _active(transactions):
        label = f"{t.description or '(no description)'} [transaction {t.id}]"

        # Shared rows may legitimately lack an account until someone settles
        shared_pending = t.is_shared or not t.owner_paid
        if (not t.account_id or t.account_id not in by_id) and not shared_pending:
            issues.append(f"Orphan transaction, invalid account: {label}")

        if t.amount <= 0:
            issues.append(f"Invalid amount {t.amount}: {label}")

        if t.shared_with:
            splits_total = sum_money([s.assigned_amount for s in t.shared_with])
            if splits_total > t.amount + Decimal("0.01"):
                issues.append(f"Splits exceed transaction amount: {label}")

        if t.type != TransactionType.TRANSFER:
            continue

        destination = by_id.get(t.destination_account_id or "")
        if destination is None:
            issues.append(f"Transfer with invalid destination account: {label}")
        if t.account_id and t.account_id == t.destination_account_id:
            issues.append(f"Circular transfer, source equals destination: {label}")

        source = by_id.get(t.account_id or "")
        if source and destination and source.currency != destination.currency:
            if not t.destination_amount or t.destination_amount <= 0:
                issues.append(
                    f"Multi-currency transfer without destination amount: {label}"
                )

    if issues:
        logger.info(f"Consistency check found {len(issues)} issue(s)")

    return issues
