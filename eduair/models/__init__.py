"""ORM Models — SQLAlchemy declarative models for the durable ledger backend.

Invariants:
    - All models inherit from Base (db/base.py)
    - Only pseudonyms are persisted; raw identity tokens never reach the database

Design Decisions:
    - All models imported here so Base.metadata is complete before create_all / autogenerate
"""

from eduair.models.presence import PresenceRecord  # noqa: F401
