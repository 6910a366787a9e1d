"""Single-pass payments ledger engine."""
