"""Database connection management for the audit trail.

The audit trail runs on PostgreSQL in deployments and on SQLite in tests and
single-process setups. ``COMPLIANCE_DATABASE_URL`` selects the database
directly; otherwise the URL is assembled from the ``POSTGRES_*`` variables.
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


logger = logging.getLogger(__name__)

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


def get_database_url(
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
) -> str:
    """
    Resolve the audit database URL.

    ``COMPLIANCE_DATABASE_URL`` wins when set and no explicit part is given.
    Otherwise a PostgreSQL URL is built from the arguments, falling back to
    ``POSTGRES_HOST``, ``POSTGRES_PORT``, ``POSTGRES_DB``, ``POSTGRES_USER``
    and ``POSTGRES_PASSWORD``.

    Returns:
        SQLAlchemy connection URL string.
    """
    explicit = any(v is not None for v in (host, port, database, user, password))
    configured = os.environ.get("COMPLIANCE_DATABASE_URL")
    if configured and not explicit:
        return configured

    host = host or os.environ.get("POSTGRES_HOST", "localhost")
    port = port or int(os.environ.get("POSTGRES_PORT", "5432"))
    database = database or os.environ.get("POSTGRES_DB", "contract_compliance")
    user = user or os.environ.get("POSTGRES_USER", "postgres")
    password = password or os.environ.get("POSTGRES_PASSWORD", "postgres")

    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


class DatabaseManager:
    """
    Owns the engine and session factory of the audit database.

    Engines are created lazily. An in-memory SQLite database is bound to a
    single shared connection so every session sees the same tables.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        """
        Initialize the database manager.

        Args:
            database_url: Database connection URL. Resolved with
                ``get_database_url`` when None.
            pool_size: Pooled connections kept open (server databases only).
            max_overflow: Connections allowed beyond ``pool_size``.
            echo: If True, log all SQL statements.
        """
        self._database_url = database_url or get_database_url()
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def is_sqlite(self) -> bool:
        return self._database_url.startswith("sqlite")

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        if self._database_url in IN_MEMORY_SQLITE_URLS:
            return create_engine(
                "sqlite://",
                echo=self._echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        if self.is_sqlite:
            # pool_size/max_overflow do not apply to SQLite
            return create_engine(
                self._database_url,
                echo=self._echo,
                connect_args={"check_same_thread": False},
            )
        return create_engine(
            self._database_url,
            pool_size=self._pool_size,
            max_overflow=self._max_overflow,
            echo=self._echo,
            pool_pre_ping=True,
        )

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Yield a session that commits on success and rolls back on error.

        Example:
            with db_manager.get_session() as session:
                session.add(event_model)
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self) -> None:
        """Create the audit tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info(f"Audit tables ready ({self.engine.dialect.name})")

    def close(self) -> None:
        """Dispose of the engine and release all connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
