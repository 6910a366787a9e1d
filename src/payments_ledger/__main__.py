import sys

from payments_ledger.main import main

if __name__ == "__main__":
    sys.exit(main())
