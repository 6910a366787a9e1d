import logging
from typing import Dict, Iterator, Optional, Set

from payments_ledger.models import (
    ClientAccount,
    DisputableTransaction,
    DisputeState,
    IgnoreReason,
    Outcome,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


class LedgerRepository:
    """
    Owns client accounts and the deposits retained for dispute lookups.
    apply() is the only operation that mutates ledger state; it never raises for a bad record,
    it returns an ignored Outcome and leaves balances and dispute states untouched.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._deposits: Dict[int, DisputableTransaction] = {}
        # Ids of every accepted deposit and withdrawal, used to reject re-used ids.
        self._accepted_transaction_ids: Set[int] = set()

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def get_transaction(self, transaction_id: int) -> Optional[DisputableTransaction]:
        """Retrieve a retained deposit by ID."""
        return self._deposits.get(transaction_id)

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._accounts)

    def iter_accounts(self) -> Iterator[ClientAccount]:
        for client_id in sorted(self._accounts):
            yield self._accounts[client_id]

    def apply(self, transaction: Transaction) -> Outcome:
        """
        Apply a single transaction to the ledger.

        Returns:
            Outcome.applied() if balances or dispute state changed,
            Outcome.ignored(reason, detail) otherwise.
        """
        account = self.get_or_create_account(transaction.client_id)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._apply_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._apply_withdrawal(account, transaction)
            case TransactionType.DISPUTE | TransactionType.RESOLVE | TransactionType.CHARGEBACK:
                return self._apply_dispute_transition(account, transaction)

    def _apply_deposit(self, account: ClientAccount, transaction: Transaction) -> Outcome:
        rejection = self._check_new_funds_movement(account, transaction)
        if rejection is not None:
            return rejection

        account.credit(transaction.amount)
        self._accepted_transaction_ids.add(transaction.transaction_id)
        self._deposits[transaction.transaction_id] = DisputableTransaction(
            client_id=transaction.client_id,
            transaction_id=transaction.transaction_id,
            amount=transaction.amount,
        )
        return Outcome.applied()

    def _apply_withdrawal(self, account: ClientAccount, transaction: Transaction) -> Outcome:
        rejection = self._check_new_funds_movement(account, transaction)
        if rejection is not None:
            return rejection

        if account.available < transaction.amount:
            return Outcome.ignored(
                IgnoreReason.INSUFFICIENT_FUNDS,
                f"withdrawal of {transaction.amount} from client {account.client_id} "
                f"exceeds available funds {account.available}",
            )

        account.debit(transaction.amount)
        self._accepted_transaction_ids.add(transaction.transaction_id)
        return Outcome.applied()

    def _check_new_funds_movement(self, account: ClientAccount, transaction: Transaction) -> Optional[Outcome]:
        if transaction.amount is None:
            return Outcome.ignored(
                IgnoreReason.MISSING_AMOUNT,
                f"transaction type `{transaction.transaction_type.value}` needs amount value",
            )

        if not transaction.amount.is_finite() or transaction.amount <= 0:
            return Outcome.ignored(
                IgnoreReason.INVALID_AMOUNT,
                f"amount {transaction.amount} has to be non-zero, positive, finite value",
            )

        if account.locked:
            return Outcome.ignored(IgnoreReason.ACCOUNT_LOCKED, f"client {account.client_id} is locked")

        if transaction.transaction_id in self._accepted_transaction_ids:
            return Outcome.ignored(
                IgnoreReason.DUPLICATE_TRANSACTION_ID,
                f"transaction id {transaction.transaction_id} already exists",
            )
        return None

    def _apply_dispute_transition(self, account: ClientAccount, transaction: Transaction) -> Outcome:
        deposit = self._deposits.get(transaction.transaction_id)

        # Withdrawals are never retained, so disputing one lands here as well.
        if deposit is None:
            return Outcome.ignored(
                IgnoreReason.TRANSACTION_NOT_FOUND,
                f"referenced transaction id {transaction.transaction_id} is not a known deposit",
            )

        if deposit.client_id != transaction.client_id:
            return Outcome.ignored(
                IgnoreReason.CLIENT_MISMATCH,
                f"referenced transaction id {transaction.transaction_id} does not exist "
                f"under client {transaction.client_id}",
            )

        next_state = deposit.state.next_state(transaction.transaction_type)
        if next_state is None:
            if deposit.state.is_terminal:
                reason = IgnoreReason.TERMINAL_STATE
            elif transaction.transaction_type is TransactionType.DISPUTE:
                reason = IgnoreReason.ALREADY_DISPUTED
            else:
                reason = IgnoreReason.NOT_DISPUTED
            return Outcome.ignored(
                reason,
                f"cannot {transaction.transaction_type.value} transaction id "
                f"{transaction.transaction_id} in state {deposit.state.value}",
            )

        match next_state:
            case DisputeState.DISPUTED:
                account.hold(deposit.amount)
            case DisputeState.RESOLVED:
                account.release_hold(deposit.amount)
            case DisputeState.CHARGED_BACK:
                account.remove_held(deposit.amount)
                account.lock()
                logger.info(f"Client {account.client_id} locked by chargeback of tx {deposit.transaction_id}")
            case DisputeState.CLEAN:
                raise AssertionError("no transition leads back to a clean state")

        deposit.state = next_state
        return Outcome.applied()
