"""Identifier binding storage."""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from .. import logging, util
from ..domain import LoginType
from ..exceptions import BindingConflict
from ..models import DBBinding

logger = logging.getLogger(__name__)

BINDING_TYPES = [LoginType.FIELDS[t] for t in LoginType.ALL]
"""Keys under which bindings are stored and reported."""


def binding_key(login_type: str) -> str:
    """
    Get the storage key for a login type.

    Both login types (``qq_unionid``) and storage keys (``qq_union_id``) are
    accepted.

    Raises
    ------
    ValueError
        If ``login_type`` is not a recognized identifier scheme.

    """
    if login_type in LoginType.FIELDS:
        return LoginType.FIELDS[login_type]
    if login_type in BINDING_TYPES:
        return login_type
    raise ValueError(f'Unknown binding type: {login_type}')


class BindingStore(ABC):
    """Maps ``(type, identifier)`` to the uid that owns it."""

    @abstractmethod
    def add(self, uid: int, login_type: str, identifier: str) -> None:
        """Bind ``identifier`` to ``uid``, taking it from any other owner."""

    @abstractmethod
    def remove(self, uid: int, login_type: str) -> None:
        """Unbind whatever ``uid`` has for ``login_type``."""

    @abstractmethod
    def get_by_uid(self, uid: int) -> Dict[str, str]:
        """Get all live bindings of ``uid``; unbound types map to ``''``."""

    @abstractmethod
    def find_uid(self, login_type: str, identifier: str) -> Optional[int]:
        """Get the uid that currently owns ``identifier``, if any."""


class DatabaseBindingStore(BindingStore):
    """
    Bindings kept in the ``uc_bindings`` table.

    Removing a binding marks the row deleted rather than deleting it. Adding
    a binding that another account holds moves it: the other account's row
    is marked deleted in the same transaction, so the newest bind always
    wins and no error is raised.
    """

    def __init__(self, database: Union[str, Engine, util.Database]) -> None:
        self.database = util.get_database(database)

    def add(self, uid: int, login_type: str, identifier: str) -> None:
        """
        Bind ``identifier`` to ``uid``.

        Parameters
        ----------
        uid : int
        login_type : str
        identifier : str

        Raises
        ------
        :class:`.BindingConflict`
            Another account claimed the identifier at the same moment.

        """
        key = binding_key(login_type)
        uid = int(uid)
        timestamp = util.now()
        try:
            with self.database.transaction() as session:
                evicted = session.query(DBBinding) \
                    .filter(DBBinding.type == key) \
                    .filter(DBBinding.identifier == identifier) \
                    .filter(DBBinding.uid != uid) \
                    .filter(DBBinding.deleted_at.is_(None)) \
                    .update({DBBinding.deleted_at: timestamp,
                             DBBinding.updated_at: timestamp},
                            synchronize_session=False)
                if evicted:
                    logger.info('Moved %s binding %s to uid %i', key,
                                logging.redact(identifier), uid)

                db_binding = session.query(DBBinding) \
                    .filter(DBBinding.uid == uid) \
                    .filter(DBBinding.type == key) \
                    .first()
                if db_binding is None:
                    db_binding = DBBinding(uid=uid, type=key,
                                           created_at=timestamp)
                db_binding.identifier = identifier
                db_binding.deleted_at = None
                db_binding.updated_at = timestamp
                session.add(db_binding)
        except IntegrityError as e:
            raise BindingConflict(
                f'{key} identifier was claimed by another account'
            ) from e

    def remove(self, uid: int, login_type: str) -> None:
        """Mark the ``uid``'s binding for ``login_type`` deleted."""
        key = binding_key(login_type)
        timestamp = util.now()
        with self.database.transaction() as session:
            session.query(DBBinding) \
                .filter(DBBinding.uid == int(uid)) \
                .filter(DBBinding.type == key) \
                .filter(DBBinding.deleted_at.is_(None)) \
                .update({DBBinding.deleted_at: timestamp,
                         DBBinding.updated_at: timestamp},
                        synchronize_session=False)

    def get_by_uid(self, uid: int) -> Dict[str, str]:
        """
        Get the live bindings of an account.

        Returns
        -------
        dict
            One entry for each of :data:`BINDING_TYPES`, with ``''`` for
            types that are not bound.

        """
        bindings = {key: '' for key in BINDING_TYPES}
        with self.database.transaction() as session:
            rows = session.query(DBBinding.type, DBBinding.identifier) \
                .filter(DBBinding.uid == int(uid)) \
                .filter(DBBinding.deleted_at.is_(None)) \
                .all()
            for key, identifier in rows:
                bindings[key] = identifier
        return bindings

    def find_uid(self, login_type: str, identifier: str) -> Optional[int]:
        """Get the uid that owns ``identifier``, or ``None``."""
        key = binding_key(login_type)
        with self.database.transaction() as session:
            row = session.query(DBBinding.uid) \
                .filter(DBBinding.type == key) \
                .filter(DBBinding.identifier == identifier) \
                .filter(DBBinding.deleted_at.is_(None)) \
                .first()
        return int(row[0]) if row else None
