"""Connection/transaction scopes and the SQLAlchemy asyncio adapter."""

from sqlrelay.infrastructure.database.context import DbContext
from sqlrelay.infrastructure.database.engine import (
    SqlAlchemyConnection,
    SqlAlchemyTransaction,
    create_db_engine,
    make_connection_factory,
)
from sqlrelay.infrastructure.database.protocols import (
    ConnectionFactory,
    ConnectionOpenHook,
    DbConnection,
    DbTransaction,
    ExecutingConnection,
)
from sqlrelay.infrastructure.database.release import drain_releases

__all__ = [
    "ConnectionFactory",
    "ConnectionOpenHook",
    "DbConnection",
    "DbContext",
    "DbTransaction",
    "ExecutingConnection",
    "SqlAlchemyConnection",
    "SqlAlchemyTransaction",
    "create_db_engine",
    "drain_releases",
    "make_connection_factory",
]
