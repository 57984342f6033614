# crudwizard/connectors/sql_connector.py

import logging
from typing import Optional

from sqlalchemy import create_engine, inspect, text, Engine
from sqlalchemy.engine.reflection import Inspector

from crudwizard.config.settings import Settings

logger = logging.getLogger(__name__)


class SqlConnector:
    """
    Manages the connection to the database the CRUD entities live in,
    using SQLAlchemy. Any dialect SQLAlchemy supports can be used; the
    default settings target SQL Server through pyodbc.
    """
    def __init__(self, settings: Optional[Settings] = None, dsn: Optional[str] = None):
        """
        Args:
            settings: Application settings; used for the DSN when none is given.
            dsn: Explicit SQLAlchemy URL, e.g. a manifest's connection reference.
        """
        if dsn is None and settings is None:
            raise ValueError("Either settings or an explicit dsn is required.")
        self.dsn: str = dsn if dsn is not None else settings.database_dsn
        self.engine: Engine | None = None

    def connect(self) -> None:
        """Creates the SQLAlchemy engine (and its connection pool) once."""
        if self.engine is not None:
            return

        try:
            self.engine = create_engine(self.dsn, echo=False)
            logger.info("SQLAlchemy engine created for %s.", self.engine.url.render_as_string(hide_password=True))
        except Exception as e:
            logger.error("Could not create SQLAlchemy engine: %s", e)
            raise

    def disconnect(self) -> None:
        if self.engine:
            self.engine.dispose()
            self.engine = None
            logger.info("SQLAlchemy engine disposed.")

    def get_inspector(self) -> Inspector:
        """
        Provides a SQLAlchemy Inspector for schema reflection.

        Raises:
            ConnectionError: If the engine is not connected.
        """
        if not self.engine:
            raise ConnectionError("Not connected. Please call connect() before using the inspector.")

        return inspect(self.engine)

    def ping(self) -> None:
        """Runs a trivial query; raises SQLAlchemyError when the database is unreachable."""
        if not self.engine:
            raise ConnectionError("Not connected. Please call connect() before pinging.")
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
