from payments_ledger.models import IgnoreReason


class PaymentsEngineError(Exception):
    """Base class for errors that abort processing of the whole stream."""


class InputStreamError(PaymentsEngineError):
    """The input stream could not be read to the end; no snapshot may be produced."""


class MalformedRecordError(ValueError):
    """
    A single input row could not be turned into a Transaction.
    Raised by the processor's parser and converted into an ignored Outcome at the row boundary.
    """

    def __init__(self, reason: IgnoreReason, message: str):
        super().__init__(message)
        self.reason = reason
