"""Debt netting for groups sharing expenses.

Net positions are signed: positive means the participant should receive money,
negative means they owe. The greedy matcher pairs the largest debtor with the
largest creditor until every position is within a cent of zero. It always
converges but does not guarantee the minimum possible number of payments.
"""

import logging
from decimal import Decimal

from .models import (
    OWNER_ID,
    ExplicitSplit,
    ImplicitEvenSplit,
    Participant,
    SettlementInstruction,
    SettlementPlan,
    Transaction,
    TransactionType,
    is_owner,
)
from .precision import (
    DEFAULT_TOLERANCE,
    divide,
    format_currency,
    round_money,
    subtract,
    sum_money,
)

logger = logging.getLogger(__name__)

SETTLED_MESSAGE = "All settled! No outstanding balances."


def _member(participant_id: str | None) -> str:
    return OWNER_ID if is_owner(participant_id) else participant_id


class _Positions:
    """Running signed balance per participant id."""

    def __init__(self, participant_ids: list[str]):
        self.balances: dict[str, Decimal] = {OWNER_ID: Decimal("0")}
        for pid in participant_ids:
            self.balances[pid] = Decimal("0")

    def credit(self, pid: str, amount: Decimal) -> None:
        self.balances[pid] = sum_money([self.balances.get(pid, 0), amount])

    def debit(self, pid: str, amount: Decimal) -> None:
        self.balances[pid] = subtract(self.balances.get(pid, 0), amount)


def compute_net_positions(
    transactions: list[Transaction], participants: list[Participant]
) -> dict[str, Decimal]:
    """
    Net position of every participant (and the owner) across shared expenses.

    Only non-deleted, unsettled EXPENSE transactions count. Splits already
    marked settled are ignored.

    Args:
        transactions: Expenses of the group (typically one trip)
        participants: Everyone sharing, excluding the owner

    Returns:
        Mapping of participant id to signed balance, rounded to cents
    """
    participant_ids = [p.id for p in participants if not is_owner(p.id)]
    positions = _Positions(participant_ids)

    for t in transactions:
        if t.deleted or t.type != TransactionType.EXPENSE or t.is_settled:
            continue

        mode = t.split_mode()
        if isinstance(mode, ExplicitSplit):
            _net_explicit(positions, t, mode)
        elif isinstance(mode, ImplicitEvenSplit):
            _net_implicit_even(positions, t, participant_ids)

    return {pid: round_money(balance) for pid, balance in positions.balances.items()}


def _net_explicit(positions: _Positions, t: Transaction, mode: ExplicitSplit) -> None:
    payer = _member(t.payer_id)
    debited = Decimal("0")

    for split in mode.allocations:
        if split.is_settled:
            continue
        positions.debit(_member(split.member_id), split.assigned_amount)
        debited = sum_money([debited, split.assigned_amount])

    if payer != OWNER_ID:
        # Whatever the splits leave uncovered is the owner's own share
        allocated = sum_money([s.assigned_amount for s in mode.allocations])
        remainder = subtract(t.amount, allocated)
        if remainder > DEFAULT_TOLERANCE:
            positions.debit(OWNER_ID, remainder)
            debited = sum_money([debited, remainder])

    positions.credit(payer, debited)


def _net_implicit_even(
    positions: _Positions, t: Transaction, participant_ids: list[str]
) -> None:
    payer = _member(t.payer_id)
    everyone = [OWNER_ID, *participant_ids]
    share = divide(t.amount, len(everyone))
    debited = Decimal("0")

    for pid in everyone:
        if pid == OWNER_ID and payer == OWNER_ID:
            continue
        positions.debit(pid, share)
        debited = sum_money([debited, share])

    positions.credit(payer, debited)


def calculate_trip_debts(
    transactions: list[Transaction],
    participants: list[Participant],
    owner_name: str = "You",
    currency: str = "BRL",
) -> SettlementPlan:
    """
    Compute the payments that settle a group's shared expenses.

    Args:
        transactions: Expenses of the group
        participants: Everyone sharing, excluding the owner
        owner_name: Display name for the owner in instructions
        currency: Currency the instructions are expressed in

    Returns:
        Settlement plan; ``plan.is_settled`` when nothing is owed
    """
    positions = compute_net_positions(transactions, participants)
    names = {p.id: p.name for p in participants}

    def name_of(pid: str) -> str:
        if pid == OWNER_ID:
            return owner_name
        return names.get(pid, "Unknown")

    debtors = [
        [pid, balance]
        for pid, balance in positions.items()
        if balance < -DEFAULT_TOLERANCE
    ]
    creditors = [
        [pid, balance]
        for pid, balance in positions.items()
        if balance > DEFAULT_TOLERANCE
    ]
    debtors.sort(key=lambda entry: entry[1])
    creditors.sort(key=lambda entry: entry[1], reverse=True)

    instructions: list[SettlementInstruction] = []
    i = j = 0

    while i < len(debtors) and j < len(creditors):
        debtor, creditor = debtors[i], creditors[j]
        amount = round_money(min(abs(debtor[1]), creditor[1]))

        if amount > 0:
            instructions.append(
                SettlementInstruction(
                    debtor_id=debtor[0],
                    creditor_id=creditor[0],
                    amount=amount,
                    debtor_name=name_of(debtor[0]),
                    creditor_name=name_of(creditor[0]),
                )
            )
            debtor[1] = sum_money([debtor[1], amount])
            creditor[1] = subtract(creditor[1], amount)

        if abs(debtor[1]) < DEFAULT_TOLERANCE:
            i += 1
        if creditor[1] < DEFAULT_TOLERANCE:
            j += 1

    logger.info(
        f"Settlement for {len(positions)} participants: "
        f"{len(instructions)} payment(s)"
    )

    return SettlementPlan(instructions=instructions, currency=currency)


def apply_settlement(
    positions: dict[str, Decimal], instructions: list[SettlementInstruction]
) -> dict[str, Decimal]:
    """Replay payments against net positions and return the result.

    A debtor paying raises their position; the creditor receiving lowers
    theirs. Applying a full plan leaves every position within a cent of zero.
    """
    result = dict(positions)
    for instruction in instructions:
        result[instruction.debtor_id] = sum_money(
            [result.get(instruction.debtor_id, 0), instruction.amount]
        )
        result[instruction.creditor_id] = subtract(
            result.get(instruction.creditor_id, 0), instruction.amount
        )
    return result


def describe_plan(plan: SettlementPlan) -> list[str]:
    """Human-readable lines for a settlement plan."""
    if plan.is_settled:
        return [SETTLED_MESSAGE]
    return [
        f"{i.debtor_name} pays {format_currency(i.amount, plan.currency)} "
        f"to {i.creditor_name}"
        for i in plan.instructions
    ]
