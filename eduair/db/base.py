"""Declarative Base — metadata shared by the ORM models and alembic.

Invariants:
    - Constraint names follow NAMING_CONVENTION, so autogenerated migrations
      are stable across SQLite and Postgres
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
