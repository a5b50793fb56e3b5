import contextlib
from typing import Iterator

from sqlalchemy.orm import Session, sessionmaker

from database.database import session_scope


class BaseRepository:
    """Repositories open one short transaction per operation."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextlib.contextmanager
    def scope(self) -> Iterator[Session]:
        with session_scope(self.session_factory) as session:
            yield session
