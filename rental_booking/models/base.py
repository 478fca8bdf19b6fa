from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every table of the availability and booking engine hangs off this
    metadata, which Alembic uses for autogeneration and tests use to create
    a throwaway schema.
    """

    pass
