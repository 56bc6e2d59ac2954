"""Database session handling and password helpers."""

from typing import Generator, Optional, Union
from datetime import datetime
from contextlib import contextmanager
from base64 import b64encode, b64decode
import binascii
import hashlib
import hmac
import secrets

from pytz import UTC
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from . import logging
from .models import Base

logger = logging.getLogger(__name__)

SALT_BYTES = 8


def now() -> datetime:
    """Get the current time, in UTC."""
    return datetime.now(tz=UTC)


class Database(object):
    """
    A SQLAlchemy engine and the session factory bound to it.

    Both the local identity backend and the binding store take one of these,
    so that they can share a single database (or not).
    """

    def __init__(self, uri_or_engine: Union[str, Engine] = 'sqlite://',
                 **engine_kwargs: object) -> None:
        if isinstance(uri_or_engine, Engine):
            self.engine = uri_or_engine
        else:
            self.engine = create_engine(uri_or_engine, **engine_kwargs)
        self._sessionmaker = sessionmaker(bind=self.engine)
        logger.debug('New database handle for %s', self.engine.url.drivername)

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Context manager for database transaction."""
        session = self._sessionmaker()
        try:
            yield session
            # Bulk UPDATEs do not show up in ``session.dirty``, so always
            # commit; a no-op commit is harmless.
            session.commit()
        except Exception as e:
            logger.error('Commit failed, rolling back: %s', str(e))
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        """Drop all tables in the database."""
        Base.metadata.drop_all(self.engine)

    def is_available(self) -> bool:
        """Check our connection to the database."""
        try:
            with self.transaction() as session:
                session.execute(text('SELECT 1'))
        except Exception as e:
            logger.error('Encountered an error talking to database: %s', e)
            return False
        return True


def get_database(database: Optional[Union[str, Engine, Database]]) \
        -> Database:
    """Coerce a URI, engine or :class:`.Database` into a :class:`.Database`."""
    if isinstance(database, Database):
        return database
    if database is None:
        raise ValueError('A database URI or engine is required')
    return Database(database)


def hash_password(password: str) -> str:
    """Generate a salted hash of a password."""
    salt = secrets.token_bytes(SALT_BYTES)
    hashed = hashlib.sha256(salt + b'-' + password.encode('utf-8')).digest()
    return b64encode(salt + hashed).decode('ascii')


def check_password(password: str, encrypted: Optional[str]) -> bool:
    """Check a password against a hash from :func:`hash_password`."""
    if not encrypted:
        return False
    try:
        decoded = b64decode(encrypted.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        return False
    salt = decoded[:SALT_BYTES]
    enc_hashed = decoded[SALT_BYTES:]
    pass_hashed = hashlib.sha256(
        salt + b'-' + password.encode('utf-8')
    ).digest()
    return hmac.compare_digest(pass_hashed, enc_hashed)
