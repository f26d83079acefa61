from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "shift_tracker"
    connection_timeout: int = 10

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", cls.host)),
            port=int(db_config.get("port", cls.port)),
            user=str(db_config.get("user", cls.user)),
            password=str(db_config.get("password", cls.password)),
            database=str(db_config.get("database", cls.database)),
            connection_timeout=int(db_config.get("connection_timeout", cls.connection_timeout)),
        )

    def connect_kwargs(self, *, with_database: bool = True) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = dict(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            connection_timeout=self.connection_timeout,
        )
        if with_database:
            kwargs["database"] = self.database
        return kwargs


class DatabaseConnection:
    """Process-wide connection factory.

    Every transaction opens its own short-lived connection; nothing is pooled
    here. Asking for an instance with a different config replaces the old one.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None or cls._instance.config != config:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        # Transactions are explicit (see mysql_base.db_transaction).
        return mysql.connector.connect(**self._config.connect_kwargs(), autocommit=False)
