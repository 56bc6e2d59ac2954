"""Testing helpers."""

from contextlib import contextmanager
from typing import Generator

from .. import util


@contextmanager
def temporary_db(database_url: str = 'sqlite://', create: bool = True,
                 drop: bool = True) -> Generator[util.Database, None, None]:
    """Provide an in-memory sqlite database for testing purposes."""
    database = util.Database(database_url)
    if create:
        database.create_all()
    try:
        yield database
    finally:
        if drop:
            database.drop_all()
        database.engine.dispose()
