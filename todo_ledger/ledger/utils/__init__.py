"""Utility modules for the todo ledger."""
