from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeState(Enum):
    CLEAN = "clean"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"

    @property
    def is_terminal(self) -> bool:
        return self in (DisputeState.RESOLVED, DisputeState.CHARGED_BACK)

    def next_state(self, transaction_type: TransactionType) -> Optional["DisputeState"]:
        """Return the state reached by applying transaction_type, or None if there is no such transition."""
        match (self, transaction_type):
            case (DisputeState.CLEAN, TransactionType.DISPUTE):
                return DisputeState.DISPUTED
            case (DisputeState.DISPUTED, TransactionType.RESOLVE):
                return DisputeState.RESOLVED
            case (DisputeState.DISPUTED, TransactionType.CHARGEBACK):
                return DisputeState.CHARGED_BACK
            case _:
                return None


class OutcomeStatus(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


class IgnoreReason(Enum):
    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"
    UNKNOWN_TRANSACTION_TYPE = "unknown_transaction_type"
    MISSING_AMOUNT = "missing_amount"
    INVALID_AMOUNT = "invalid_amount"
    ACCOUNT_LOCKED = "account_locked"
    DUPLICATE_TRANSACTION_ID = "duplicate_transaction_id"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    CLIENT_MISMATCH = "client_mismatch"
    ALREADY_DISPUTED = "already_disputed"
    NOT_DISPUTED = "not_disputed"
    TERMINAL_STATE = "terminal_state"


@dataclass(frozen=True)
class Outcome:
    status: OutcomeStatus
    reason: Optional[IgnoreReason] = None
    detail: str = ""

    @classmethod
    def applied(cls) -> "Outcome":
        return cls(OutcomeStatus.APPLIED)

    @classmethod
    def ignored(cls, reason: IgnoreReason, detail: str = "") -> "Outcome":
        return cls(OutcomeStatus.IGNORED, reason, detail)

    @property
    def is_applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED

    def __str__(self) -> str:
        if self.is_applied:
            return "applied"
        return f"ignored ({self.reason.value}): {self.detail}"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class DisputableTransaction:
    """A deposit retained for later dispute/resolve/chargeback lookups."""

    client_id: int
    transaction_id: int
    amount: Decimal
    state: DisputeState = DisputeState.CLEAN


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount

    def lock(self) -> None:
        self.locked = True


@dataclass
class ProcessingStats:
    """Counters for tracking per-record outcomes."""

    applied: int = 0
    ignored: int = 0
    ignored_by_reason: Counter = field(default_factory=Counter)

    @property
    def processed(self) -> int:
        return self.applied + self.ignored

    def record(self, outcome: Outcome) -> None:
        if outcome.is_applied:
            self.applied += 1
        else:
            self.ignored += 1
            self.ignored_by_reason[outcome.reason] += 1

    def report(self) -> str:
        line = f"Processed: {self.processed}, Applied: {self.applied}, Ignored: {self.ignored}"
        if self.ignored_by_reason:
            breakdown = ", ".join(
                f"{reason.value}={count}"
                for reason, count in sorted(self.ignored_by_reason.items(), key=lambda item: item[0].value)
            )
            line += f" ({breakdown})"
        return line
