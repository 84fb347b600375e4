"""
Alembic migrations of the time ledger schema.
"""
