"""Connection adapters."""

from dbalkit.adapters.sqlalchemy import SQLAlchemyConnection, SQLAlchemyConnectionFactory

__all__ = ("SQLAlchemyConnection", "SQLAlchemyConnectionFactory")
