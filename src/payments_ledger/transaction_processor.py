import logging
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Iterable, Mapping, Optional

from payments_ledger.errors import MalformedRecordError
from payments_ledger.ledger_repository import LedgerRepository
from payments_ledger.models import IgnoreReason, Outcome, ProcessingStats, Transaction, TransactionType

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
DEFAULT_AMOUNT_PLACES = 4


class TransactionProcessor:
    """
    Adapts raw rows into Transactions and forwards every one of them to the repository, in order.
    Rows that cannot be parsed become ignored Outcomes naming the bad field; nothing here is pre-filtered.
    """

    def __init__(self, repository: LedgerRepository, amount_places: int = DEFAULT_AMOUNT_PLACES):
        self._repository = repository
        self._quantum = Decimal(1).scaleb(-amount_places)
        self.stats = ProcessingStats()

    @property
    def repository(self) -> LedgerRepository:
        return self._repository

    def process_records(self, rows: Iterable[Mapping[str, Optional[str]]]) -> None:
        for row in rows:
            self.process_record(row)

    def process_record(self, row: Mapping[str, Optional[str]]) -> Outcome:
        """Parse a raw row and apply it. Malformed rows are reported, never raised."""
        try:
            transaction = self.parse_record(row)
        except MalformedRecordError as e:
            outcome = Outcome.ignored(e.reason, str(e))
            self._record(outcome, f"row {dict(row)}")
            return outcome

        return self.process_transaction(transaction)

    def process_transaction(self, transaction: Transaction) -> Outcome:
        outcome = self._repository.apply(transaction)
        self._record(outcome, repr(transaction))
        return outcome

    def parse_record(self, row: Mapping[str, Optional[str]]) -> Transaction:
        """
        Turn a raw CSV row into a typed Transaction.

        Keys and values are stripped and the type is matched case-insensitively.
        The amount is required for deposits and withdrawals and ignored for the other kinds.

        Raises:
            MalformedRecordError: naming the field that is missing or invalid.
        """
        normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

        transaction_type_str = self._required_field(normalized, "type").lower()
        try:
            transaction_type = TransactionType(transaction_type_str)
        except ValueError:
            raise MalformedRecordError(
                IgnoreReason.UNKNOWN_TRANSACTION_TYPE,
                f"`{transaction_type_str}` is not a known transaction type",
            ) from None

        client_id = self._parse_id(normalized, "client", MAX_CLIENT_ID)
        transaction_id = self._parse_id(normalized, "tx", MAX_TRANSACTION_ID)

        amount = None
        if transaction_type.carries_amount:
            amount = self._parse_amount(normalized.get("amount", ""), transaction_type)

        return Transaction(
            transaction_type=transaction_type,
            client_id=client_id,
            transaction_id=transaction_id,
            amount=amount,
        )

    def _required_field(self, normalized: Mapping[str, str], name: str) -> str:
        value = normalized.get(name, "")
        if not value:
            raise MalformedRecordError(IgnoreReason.MISSING_FIELD, f"field `{name}` is missing")
        return value

    def _parse_id(self, normalized: Mapping[str, str], name: str, upper_bound: int) -> int:
        raw = self._required_field(normalized, name)
        # int() alone would also accept signs, underscores and non-ASCII digits
        if not (raw.isascii() and raw.isdigit()):
            raise MalformedRecordError(
                IgnoreReason.INVALID_FIELD, f"field `{name}` value `{raw}` is not an unsigned integer"
            )
        value = int(raw)

        if not 0 <= value <= upper_bound:
            raise MalformedRecordError(
                IgnoreReason.INVALID_FIELD, f"field `{name}` value {value} is outside 0..{upper_bound}"
            )
        return value

    def _parse_amount(self, raw: str, transaction_type: TransactionType) -> Decimal:
        if not raw:
            raise MalformedRecordError(
                IgnoreReason.MISSING_AMOUNT,
                f"transaction type `{transaction_type.value}` needs amount value",
            )

        try:
            parsed = Decimal(raw)
            amount = parsed
            if parsed.is_finite():
                amount = parsed.quantize(self._quantum, rounding=ROUND_HALF_EVEN)
                if amount != parsed:
                    logger.warning(f"Amount `{raw}` rounded to {amount}")
        except InvalidOperation:
            raise MalformedRecordError(
                IgnoreReason.INVALID_AMOUNT, f"`{raw}` is not a valid decimal amount"
            ) from None

        if not amount.is_finite() or amount <= 0:
            raise MalformedRecordError(
                IgnoreReason.INVALID_AMOUNT,
                f"`{raw}` is not valid value. Amount has to be non-zero, positive, finite value",
            )
        return amount

    def _record(self, outcome: Outcome, subject: str) -> None:
        self.stats.record(outcome)
        if outcome.is_applied:
            logger.debug(f"Applied {subject}")
        else:
            logger.warning(f"Ignored {subject}: {outcome.reason.value}: {outcome.detail}")
