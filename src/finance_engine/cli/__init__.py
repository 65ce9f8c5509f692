"""Command-line interface for finance_engine."""
