import csv
import logging
import sys
from decimal import Decimal
from typing import Iterable, List, Optional, TextIO

from payments_ledger.config import get_settings
from payments_ledger.errors import InputStreamError
from payments_ledger.models import ClientAccount
from payments_ledger.payments_engine import PaymentsEngine

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INPUT_ERROR = 2

OUTPUT_HEADER = ("client", "available", "held", "total", "locked")


def format_decimal(value: Decimal, places: int) -> str:
    """Format decimal with a fixed number of fractional places."""
    quantized = value.quantize(Decimal(1).scaleb(-places))
    return f"{quantized:f}"


def write_accounts(accounts: Iterable[ClientAccount], stream: TextIO, places: int) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_HEADER)
    for account in sorted(accounts, key=lambda a: a.client_id):
        writer.writerow((
            account.client_id,
            format_decimal(account.available, places),
            format_decimal(account.held, places),
            format_decimal(account.total, places),
            str(account.locked).lower(),
        ))


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format=settings.log_format,
        stream=sys.stderr,
    )

    if len(args) != 1:
        print("ERROR: Incorrect number of arguments", file=sys.stderr)
        print("Usage: payments-engine <input.csv>", file=sys.stderr)
        return EXIT_USAGE

    engine = PaymentsEngine(amount_places=settings.amount_places)
    try:
        accounts = engine.process_file(args[0])
    except InputStreamError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    if settings.report_stats:
        print(engine.stats.report(), file=sys.stderr)

    write_accounts(accounts.values(), sys.stdout, settings.amount_places)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
