"""Tests for :mod:`ucenter.util`."""

from unittest import TestCase
import string

from hypothesis import given, settings
from hypothesis import strategies as st

from .. import util
from .util import temporary_db


class TestCheckPassword(TestCase):
    """Passwords are stored salted and hashed."""

    @given(st.text(alphabet=string.printable))
    @settings(max_examples=200)
    def test_check_passwords_successful(self, passw):
        encrypted = util.hash_password(passw)
        self.assertTrue(util.check_password(passw, encrypted),
                        f"should work for password '{passw}'")

    @given(st.text(alphabet=string.printable),
           st.text(alphabet=string.printable))
    @settings(max_examples=500)
    def test_check_passwords_fuzz(self, passw, fuzzpw):
        encrypted = util.hash_password(passw)
        self.assertEqual(util.check_password(fuzzpw, encrypted),
                         passw == fuzzpw)

    def test_salted(self):
        """The same password hashes differently each time."""
        self.assertNotEqual(util.hash_password('foo'),
                            util.hash_password('foo'))

    def test_garbage_hash(self):
        """A hash that is not ours never matches."""
        self.assertFalse(util.check_password('foo', ''))
        self.assertFalse(util.check_password('foo', None))
        self.assertFalse(util.check_password('foo', 'not base64!'))


class TestDatabase(TestCase):
    """:class:`.Database` wraps an engine and a session factory."""

    def test_is_available(self):
        with temporary_db() as database:
            self.assertTrue(database.is_available())

    def test_transaction_rolls_back(self):
        """An exception inside the transaction discards the changes."""
        from ..models import DBUser
        with temporary_db() as database:
            with self.assertRaises(RuntimeError):
                with database.transaction() as session:
                    session.add(DBUser(username='foo', password='x',
                                       email='foo@bar.com', is_member=0))
                    session.flush()
                    raise RuntimeError('nope')
            with database.transaction() as session:
                self.assertEqual(session.query(DBUser).count(), 0)

    def test_get_database(self):
        """URIs are wrapped; databases are passed through."""
        database = util.get_database('sqlite://')
        self.assertIsInstance(database, util.Database)
        self.assertIs(util.get_database(database), database)
        with self.assertRaises(ValueError):
            util.get_database(None)
