"""Database Infrastructure — SQLAlchemy Base for the durable ledger backend.

Invariants:
    - Only used when LEDGER_BACKEND=database
    - All sessions are async (AsyncSession, see infrastructure/database.py)
"""
