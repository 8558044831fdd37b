"""Command line interface for the RODT ledger."""
