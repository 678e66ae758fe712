import logging
from collections.abc import Generator

from fastapi import Request
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

# Register tables on SQLModel.metadata
from zerowaste.models.user import User  # noqa: F401
from zerowaste.models.donation import Donation  # noqa: F401
from zerowaste.models.claim_request import ClaimRequest  # noqa: F401


logger = logging.getLogger(__name__)


class Database:
    """Owns the engine for one application instance."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url

        kwargs = {}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise every session sees an empty db
                kwargs["poolclass"] = StaticPool

        self.engine = create_engine(url, echo=echo, **kwargs)

    def create_db_and_tables(self) -> None:
        """Create all tables in the database if they don't exist."""
        SQLModel.metadata.create_all(self.engine)
        logger.info("Database tables ready on %s", self.engine.url.render_as_string(hide_password=True))

    def drop_all(self) -> None:
        SQLModel.metadata.drop_all(self.engine)

    def session(self) -> Session:
        return Session(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_session(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    with get_database(request).session() as session:
        yield session
