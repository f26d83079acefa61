from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from .connection import DatabaseConnection
from .mysql_base import db_transaction


class TransactionManager(Protocol):
    """Unit of work boundary used by the services.

    Everything a service does inside ``with tx.transaction():`` commits or
    rolls back together, including Activity Log appends.
    """

    def transaction(self) -> AbstractContextManager:
        raise NotImplementedError


class MySQLTransactionManager(TransactionManager):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def transaction(self) -> AbstractContextManager:
        return db_transaction(self._conn_factory)
