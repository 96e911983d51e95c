"""SQLAlchemy declarative Base shared by models and Alembic autogenerate."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for the accounts schema."""

    pass
