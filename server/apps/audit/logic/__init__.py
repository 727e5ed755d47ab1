"""Business logic for the audit ledger."""
