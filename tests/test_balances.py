"""Tests for balance derivation, receivables and payables."""

from datetime import date
from decimal import Decimal

import pytest

from ledger_core.balances import (
    calculate_balances,
    calculate_effective_value,
    calculate_net_worth,
    calculate_total_payables,
    calculate_total_receivables,
    check_data_consistency,
)
from ledger_core.models import Account, SharedSplit, Transaction, TransactionType


def make_account(id: str, initial: str = "0", currency: str = "BRL") -> Account:
    """Create an account with an initial balance."""
    return Account(
        id=id, name=id.title(), initial_balance=Decimal(initial), currency=currency
    )


def make_tx(
    type: TransactionType,
    amount: str,
    on: date = date(2024, 1, 15),
    account_id: str | None = "checking",
    **kwargs,
) -> Transaction:
    """Create a transaction with sensible defaults."""
    return Transaction(
        id=kwargs.pop("id", f"tx-{type.value}-{amount}"),
        type=type,
        amount=Decimal(amount),
        date=on,
        account_id=account_id,
        **kwargs,
    )


@pytest.fixture
def accounts():
    return [
        make_account("checking", "1000.00"),
        make_account("savings", "500.00"),
        make_account("wallet-usd", "100.00", currency="USD"),
    ]


def balance_of(accounts: list[Account], account_id: str) -> Decimal:
    return next(a.balance for a in accounts if a.id == account_id)


class TestIncomeAndExpense:
    """Sign effects of INCOME and EXPENSE."""

    def test_no_transactions_keeps_initial_balance(self, accounts):
        result = calculate_balances(accounts, [])

        assert balance_of(result, "checking") == Decimal("1000.00")

    def test_expense_subtracts(self, accounts):
        result = calculate_balances(
            accounts, [make_tx(TransactionType.EXPENSE, "120.50")]
        )

        assert balance_of(result, "checking") == Decimal("879.50")

    def test_income_adds(self, accounts):
        result = calculate_balances(accounts, [make_tx(TransactionType.INCOME, "0.1")])

        assert balance_of(result, "checking") == Decimal("1000.10")

    def test_refund_expense_adds(self, accounts):
        tx = make_tx(TransactionType.EXPENSE, "50.00", is_refund=True)

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("1050.00")

    def test_refund_income_subtracts(self, accounts):
        tx = make_tx(TransactionType.INCOME, "50.00", is_refund=True)

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("950.00")

    @pytest.mark.parametrize("payer_id", [None, "me", "user"])
    def test_owner_paid_expense_subtracts(self, accounts, payer_id):
        tx = make_tx(TransactionType.EXPENSE, "10.00", payer_id=payer_id)

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("990.00")

    def test_expense_paid_by_someone_else_has_no_effect(self, accounts):
        tx = make_tx(
            TransactionType.EXPENSE, "80.00", payer_id="ana", is_shared=True
        )

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("1000.00")

    def test_deleted_transactions_are_ignored(self, accounts):
        tx = make_tx(TransactionType.EXPENSE, "999.00", deleted=True)

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("1000.00")

    def test_unknown_source_account_is_skipped(self, accounts):
        tx = make_tx(TransactionType.EXPENSE, "10.00", account_id="closed-account")

        result = calculate_balances(accounts, [tx])

        assert [a.balance for a in result] == [a.initial_balance for a in accounts]

    def test_inputs_are_not_mutated(self, accounts):
        accounts[0].balance = Decimal("12345.00")
        tx = make_tx(TransactionType.EXPENSE, "10.00")

        result = calculate_balances(accounts, [tx])

        assert accounts[0].balance == Decimal("12345.00")
        assert result[0] is not accounts[0]
        assert balance_of(result, "checking") == Decimal("990.00")

    def test_result_preserves_account_order(self, accounts):
        result = calculate_balances(accounts, [])

        assert [a.id for a in result] == ["checking", "savings", "wallet-usd"]


class TestTransfers:
    """TRANSFER conservation and self-healing."""

    def test_same_currency_transfer_conserves_total(self, accounts):
        tx = make_tx(
            TransactionType.TRANSFER, "250.00", destination_account_id="savings"
        )

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("750.00")
        assert balance_of(result, "savings") == Decimal("750.00")
        total = balance_of(result, "checking") + balance_of(result, "savings")
        assert total == Decimal("1500.00")

    def test_unresolvable_destination_reverts_source(self, accounts):
        tx = make_tx(
            TransactionType.TRANSFER, "250.00", destination_account_id="nowhere"
        )

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("1000.00")

    def test_missing_destination_reverts_source(self, accounts):
        tx = make_tx(TransactionType.TRANSFER, "250.00")

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("1000.00")

    def test_multi_currency_uses_destination_amount(self, accounts):
        tx = make_tx(
            TransactionType.TRANSFER,
            "550.00",
            destination_account_id="wallet-usd",
            destination_amount=Decimal("100.00"),
        )

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("450.00")
        assert balance_of(result, "wallet-usd") == Decimal("200.00")

    def test_multi_currency_without_destination_amount_falls_back_one_to_one(
        self, accounts
    ):
        tx = make_tx(
            TransactionType.TRANSFER, "40.00", destination_account_id="wallet-usd"
        )

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "checking") == Decimal("960.00")
        assert balance_of(result, "wallet-usd") == Decimal("140.00")

    def test_transfer_from_unknown_source_still_credits_destination(self, accounts):
        tx = make_tx(
            TransactionType.TRANSFER,
            "30.00",
            account_id="deleted-account",
            destination_account_id="savings",
        )

        result = calculate_balances(accounts, [tx])

        assert balance_of(result, "savings") == Decimal("530.00")


class TestCutoffDate:
    """Historical balance reconstruction."""

    @pytest.fixture
    def history(self):
        return [
            make_tx(TransactionType.INCOME, "100.00", on=date(2024, 1, 1), id="a"),
            make_tx(TransactionType.EXPENSE, "30.00", on=date(2024, 1, 10), id="b"),
            make_tx(TransactionType.EXPENSE, "20.00", on=date(2024, 2, 1), id="c"),
        ]

    def test_no_cutoff_applies_everything(self, accounts, history):
        result = calculate_balances(accounts, history)

        assert balance_of(result, "checking") == Decimal("1050.00")

    def test_cutoff_day_is_inclusive(self, accounts, history):
        result = calculate_balances(accounts, history, cutoff_date=date(2024, 1, 10))

        assert balance_of(result, "checking") == Decimal("1070.00")

    def test_cutoff_before_everything(self, accounts, history):
        result = calculate_balances(accounts, history, cutoff_date=date(2023, 12, 31))

        assert balance_of(result, "checking") == Decimal("1000.00")

    def test_unsorted_input_is_processed_chronologically(self, accounts, history):
        result = calculate_balances(
            accounts, list(reversed(history)), cutoff_date=date(2024, 1, 31)
        )

        assert balance_of(result, "checking") == Decimal("1070.00")


class TestReceivablesAndPayables:
    """Aggregate amounts owed to and by the owner."""

    def test_receivables_sum_unsettled_splits(self):
        tx = make_tx(
            TransactionType.EXPENSE,
            "250.00",
            is_shared=True,
            shared_with=[
                SharedSplit(member_id="ana", assigned_amount=Decimal("75.00")),
                SharedSplit(
                    member_id="bia", assigned_amount=Decimal("50.00"), is_settled=True
                ),
            ],
        )

        assert calculate_total_receivables([tx]) == Decimal("75.00")

    def test_receivables_ignore_owner_split(self):
        tx = make_tx(
            TransactionType.EXPENSE,
            "250.00",
            is_shared=True,
            shared_with=[
                SharedSplit(member_id="user", assigned_amount=Decimal("125.00")),
                SharedSplit(member_id="ana", assigned_amount=Decimal("125.00")),
            ],
        )

        assert calculate_total_receivables([tx]) == Decimal("125.00")
        assert calculate_effective_value(tx) == Decimal("125.00")

    def test_receivables_apply_exchange_rate(self):
        tx = make_tx(
            TransactionType.EXPENSE,
            "100.00",
            currency="USD",
            exchange_rate=Decimal("5.10"),
            is_shared=True,
            shared_with=[
                SharedSplit(member_id="ana", assigned_amount=Decimal("50.00"))
            ],
        )

        assert calculate_total_receivables([tx], "BRL") == Decimal("255.00")

    def test_receivables_skip_orphans_and_other_payers(self):
        orphan = make_tx(
            TransactionType.EXPENSE,
            "100.00",
            account_id=None,
            is_shared=True,
            shared_with=[
                SharedSplit(member_id="ana", assigned_amount=Decimal("50"))
            ],
        )
        other_paid = make_tx(
            TransactionType.EXPENSE,
            "100.00",
            payer_id="ana",
            is_shared=True,
            shared_with=[SharedSplit(member_id="user", assigned_amount=Decimal("50"))],
        )

        assert calculate_total_receivables([orphan, other_paid]) == Decimal("0")

    def test_payables_sum_my_portion(self):
        txs = [
            make_tx(TransactionType.EXPENSE, "40.00", payer_id="ana", is_shared=True),
            make_tx(TransactionType.EXPENSE, "15.50", payer_id="bia", is_shared=True),
        ]

        assert calculate_total_payables(txs, "BRL") == Decimal("55.50")

    def test_payables_exclude_settled_and_foreign_currency(self):
        txs = [
            make_tx(
                TransactionType.EXPENSE,
                "40.00",
                payer_id="ana",
                is_shared=True,
                is_settled=True,
            ),
            make_tx(
                TransactionType.EXPENSE,
                "15.50",
                payer_id="bia",
                is_shared=True,
                currency="USD",
            ),
            make_tx(
                TransactionType.EXPENSE,
                "9.99",
                payer_id="bia",
                is_shared=True,
                deleted=True,
            ),
        ]

        assert calculate_total_payables(txs, "BRL") == Decimal("0")

    def test_payables_default_to_brl_base(self):
        usd = make_tx(
            TransactionType.EXPENSE,
            "15.50",
            payer_id="bia",
            is_shared=True,
            currency="USD",
        )
        brl = make_tx(
            TransactionType.EXPENSE,
            "4.50",
            payer_id="bia",
            is_shared=True,
            currency="BRL",
            id="brl",
        )

        assert calculate_total_payables([usd, brl]) == Decimal("4.50")
        assert calculate_total_payables([usd, brl], "USD") == Decimal("15.50")

    def test_net_worth(self, accounts):
        txs = [
            make_tx(
                TransactionType.EXPENSE,
                "100.00",
                is_shared=True,
                shared_with=[
                    SharedSplit(member_id="ana", assigned_amount=Decimal("50"))
                ],
                id="mine",
            ),
            make_tx(
                TransactionType.EXPENSE,
                "20.00",
                payer_id="ana",
                is_shared=True,
                id="hers",
            ),
        ]
        derived = calculate_balances(accounts, txs)

        # 900 + 500 cash in BRL, +50 receivable, -20 payable
        assert calculate_net_worth(derived, txs, "BRL") == Decimal("1430.00")


class TestEffectiveValue:
    """The owner's real cost of a transaction."""

    def test_unshared_expense_is_full_amount(self):
        assert calculate_effective_value(
            make_tx(TransactionType.EXPENSE, "80.00")
        ) == Decimal("80.00")

    def test_owner_paid_subtracts_other_splits(self):
        tx = make_tx(
            TransactionType.EXPENSE,
            "250.00",
            is_shared=True,
            shared_with=[
                SharedSplit(member_id="ana", assigned_amount=Decimal("75.00")),
                SharedSplit(member_id="bia", assigned_amount=Decimal("50.00")),
            ],
        )

        assert calculate_effective_value(tx) == Decimal("125.00")

    def test_splits_exceeding_amount_fall_back_to_amount(self):
        tx = make_tx(
            TransactionType.EXPENSE,
            "10.00",
            is_shared=True,
            shared_with=[
                SharedSplit(member_id="ana", assigned_amount=Decimal("20"))
            ],
        )

        assert calculate_effective_value(tx) == Decimal("10.00")

    def test_income_is_full_amount(self):
        assert calculate_effective_value(
            make_tx(TransactionType.INCOME, "10.00", is_shared=True)
        ) == Decimal("10.00")


class TestDataConsistency:
    """Integrity report for a snapshot."""

    def test_clean_snapshot_has_no_issues(self, accounts):
        txs = [make_tx(TransactionType.EXPENSE, "10.00")]

        assert check_data_consistency(accounts, txs) == []

    def test_orphan_transaction(self, accounts):
        txs = [make_tx(TransactionType.EXPENSE, "10.00", account_id="gone", id="t1")]

        issues = check_data_consistency(accounts, txs)

        assert len(issues) == 1
        assert "Orphan" in issues[0]
        assert "t1" in issues[0]

    def test_shared_without_account_is_not_orphan(self, accounts):
        txs = [
            make_tx(
                TransactionType.EXPENSE,
                "10.00",
                account_id=None,
                payer_id="ana",
                is_shared=True,
            )
        ]

        assert check_data_consistency(accounts, txs) == []

    def test_zero_amount(self, accounts):
        issues = check_data_consistency(
            accounts, [make_tx(TransactionType.EXPENSE, "0")]
        )

        assert any("Invalid amount" in issue for issue in issues)

    def test_splits_exceed_amount(self, accounts):
        tx = make_tx(
            TransactionType.EXPENSE,
            "10.00",
            is_shared=True,
            shared_with=[
                SharedSplit(member_id="ana", assigned_amount=Decimal("10.02"))
            ],
        )

        issues = check_data_consistency(accounts, [tx])

        assert any("Splits exceed" in issue for issue in issues)

    def test_transfer_problems(self, accounts):
        txs = [
            make_tx(
                TransactionType.TRANSFER,
                "10.00",
                destination_account_id="checking",
                id="circular",
            ),
            make_tx(
                TransactionType.TRANSFER,
                "10.00",
                destination_account_id="missing",
                id="dangling",
            ),
            make_tx(
                TransactionType.TRANSFER,
                "10.00",
                destination_account_id="wallet-usd",
                id="fx",
            ),
        ]

        issues = check_data_consistency(accounts, txs)

        assert any("Circular" in i and "circular" in i for i in issues)
        assert any("invalid destination" in i and "dangling" in i for i in issues)
        assert any("Multi-currency" in i and "fx" in i for i in issues)
