import csv
import logging
from typing import Dict, Iterator, Optional, TextIO

from payments_ledger.errors import InputStreamError
from payments_ledger.ledger_repository import LedgerRepository
from payments_ledger.models import ClientAccount, ProcessingStats
from payments_ledger.transaction_processor import DEFAULT_AMOUNT_PLACES, TransactionProcessor

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "client", "tx")


class PaymentsEngine:
    """
    Reads a transaction CSV in order and applies every row to the ledger.
    A snapshot is only returned once the whole stream has been read; stream-level
    failures raise InputStreamError instead.
    """

    def __init__(self, repository: Optional[LedgerRepository] = None, amount_places: int = DEFAULT_AMOUNT_PLACES):
        self._repository = repository if repository is not None else LedgerRepository()
        self._processor = TransactionProcessor(self._repository, amount_places=amount_places)

    @property
    def stats(self) -> ProcessingStats:
        return self._processor.stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing transactions from {filepath}")
        try:
            with open(filepath, "r", newline="", encoding="utf-8-sig") as f:
                return self.process_stream(f)
        except OSError as e:
            raise InputStreamError(f"Can not open file `{filepath}`: {e}") from e

    def process_stream(self, stream: TextIO) -> Dict[int, ClientAccount]:
        """Process an open CSV text stream and return final account states."""
        self._processor.process_records(self._read_csv_rows(stream))

        logger.info(f"Processing complete. {self.stats.report()}")
        return self._repository.get_all_accounts()

    def _read_csv_rows(self, stream: TextIO) -> Iterator[Dict[str, Optional[str]]]:
        """Read CSV rows lazily, one at a time."""
        reader = csv.DictReader(stream, skipinitialspace=True, strict=True)
        try:
            fieldnames = reader.fieldnames
            if fieldnames is None:
                logger.info("Input stream is empty")
                return

            columns = {name.strip() for name in fieldnames}
            missing = [name for name in REQUIRED_COLUMNS if name not in columns]
            if missing:
                raise InputStreamError(f"Input header is missing required columns: {', '.join(missing)}")

            for row in reader:
                yield row
        except (csv.Error, UnicodeDecodeError) as e:
            raise InputStreamError(f"Input stream is corrupt near line {reader.line_num}: {e}") from e
