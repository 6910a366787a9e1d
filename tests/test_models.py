import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from payments_ledger.models import (
    ClientAccount,
    DisputeState,
    IgnoreReason,
    Outcome,
    OutcomeStatus,
    ProcessingStats,
    Transaction,
    TransactionType,
)


class TestTransaction:
    def test_create_deposit(self):
        transaction = Transaction(
            transaction_type=TransactionType.DEPOSIT,
            client_id=1,
            transaction_id=1,
            amount=Decimal("100.0"),
        )
        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.client_id == 1
        assert transaction.transaction_id == 1
        assert transaction.amount == Decimal("100.0")

    def test_create_dispute_no_amount(self):
        transaction = Transaction(
            transaction_type=TransactionType.DISPUTE,
            client_id=1,
            transaction_id=1,
        )
        assert transaction.amount is None

    def test_only_deposit_and_withdrawal_carry_amount(self):
        assert TransactionType.DEPOSIT.carries_amount
        assert TransactionType.WITHDRAWAL.carries_amount
        assert not TransactionType.DISPUTE.carries_amount
        assert not TransactionType.RESOLVE.carries_amount
        assert not TransactionType.CHARGEBACK.carries_amount


class TestClientAccount:
    def test_default_values(self):
        account = ClientAccount(client_id=1)
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.locked is False

    def test_total_property(self):
        account = ClientAccount(
            client_id=1,
            available=Decimal("100"),
            held=Decimal("50"),
        )
        assert account.total == Decimal("150")

    def test_hold_and_release_round_trip(self):
        account = ClientAccount(client_id=1, available=Decimal("10.5"))
        account.hold(Decimal("4.25"))
        assert account.available == Decimal("6.25")
        assert account.held == Decimal("4.25")

        account.release_hold(Decimal("4.25"))
        assert account.available == Decimal("10.5")
        assert account.held == Decimal("0")

    def test_remove_held_reduces_total(self):
        account = ClientAccount(client_id=1, available=Decimal("1"), held=Decimal("3"))
        account.remove_held(Decimal("3"))
        assert account.held == Decimal("0")
        assert account.total == Decimal("1")


class TestDisputeState:
    def test_clean_can_only_be_disputed(self):
        assert DisputeState.CLEAN.next_state(TransactionType.DISPUTE) == DisputeState.DISPUTED
        assert DisputeState.CLEAN.next_state(TransactionType.RESOLVE) is None
        assert DisputeState.CLEAN.next_state(TransactionType.CHARGEBACK) is None

    def test_disputed_transitions(self):
        assert DisputeState.DISPUTED.next_state(TransactionType.RESOLVE) == DisputeState.RESOLVED
        assert DisputeState.DISPUTED.next_state(TransactionType.CHARGEBACK) == DisputeState.CHARGED_BACK
        assert DisputeState.DISPUTED.next_state(TransactionType.DISPUTE) is None

    def test_terminal_states_have_no_transitions(self):
        for state in (DisputeState.RESOLVED, DisputeState.CHARGED_BACK):
            assert state.is_terminal
            for transaction_type in TransactionType:
                assert state.next_state(transaction_type) is None

    def test_deposit_and_withdrawal_never_move_dispute_state(self):
        for state in DisputeState:
            assert state.next_state(TransactionType.DEPOSIT) is None
            assert state.next_state(TransactionType.WITHDRAWAL) is None


class TestOutcome:
    def test_applied(self):
        outcome = Outcome.applied()
        assert outcome.is_applied
        assert outcome.status == OutcomeStatus.APPLIED
        assert outcome.reason is None
        assert str(outcome) == "applied"

    def test_ignored_carries_reason(self):
        outcome = Outcome.ignored(IgnoreReason.INSUFFICIENT_FUNDS, "not enough")
        assert not outcome.is_applied
        assert outcome.reason == IgnoreReason.INSUFFICIENT_FUNDS
        assert str(outcome) == "ignored (insufficient_funds): not enough"


class TestProcessingStats:
    def test_counts_by_reason(self):
        stats = ProcessingStats()
        stats.record(Outcome.applied())
        stats.record(Outcome.applied())
        stats.record(Outcome.ignored(IgnoreReason.ACCOUNT_LOCKED))
        stats.record(Outcome.ignored(IgnoreReason.MISSING_AMOUNT))
        stats.record(Outcome.ignored(IgnoreReason.ACCOUNT_LOCKED))

        assert stats.processed == 5
        assert stats.applied == 2
        assert stats.ignored == 3
        assert stats.ignored_by_reason[IgnoreReason.ACCOUNT_LOCKED] == 2
        assert stats.report() == (
            "Processed: 5, Applied: 2, Ignored: 3 (account_locked=2, missing_amount=1)"
        )

    def test_report_without_ignored(self):
        stats = ProcessingStats()
        stats.record(Outcome.applied())
        assert stats.report() == "Processed: 1, Applied: 1, Ignored: 0"
