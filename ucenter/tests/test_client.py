"""Tests for :mod:`ucenter.client`."""

from unittest import TestCase, mock

from .. import client as client_module
from ..auth.tokens import SessionIssuer
from ..backend import DatabaseBackend, RemoteBackend
from ..binding import DatabaseBindingStore
from ..client import UCenterClient
from ..credentials import DEFAULT_EMAIL_DOMAIN
from ..exceptions import UnsupportedOperation
from ..friends import FriendApi
from ..users import UserApi
from .util import temporary_db


class TestFactories(TestCase):
    """Clients can be remote, local or mixed."""

    def test_remote_by_default(self):
        client = UCenterClient('https://uc.example.com', 'app', 'secret',
                               timeout=3)
        self.assertTrue(client.is_remote)
        self.assertEqual(client.backend.timeout, 3)
        self.assertIsNone(client.binding_store)
        self.assertIsNone(client.issuer)
        self.assertEqual(client.email_domain, DEFAULT_EMAIL_DOMAIN)
        self.assertEqual(client.system_uid, 1)
        self.assertEqual(len(client.build_sign('abc', 1)), 88)
        self.assertIsInstance(client.user(), UserApi)
        self.assertIsInstance(client.friend(), FriendApi)

    def test_from_database(self):
        with temporary_db() as database:
            client = UCenterClient.from_database(database)
            self.assertIsInstance(client.backend, DatabaseBackend)
            self.assertFalse(client.is_remote)
            with self.assertRaises(UnsupportedOperation):
                client.request_raw('user/synlogin', {'uid': 1})
            with self.assertRaises(UnsupportedOperation):
                client.get_token()
            with self.assertRaises(UnsupportedOperation):
                client.build_sign('abc', 1)

    def test_with_binding_store(self):
        with temporary_db() as database:
            client = UCenterClient.with_binding_store(
                'https://uc.example.com', 'app', 'secret', database
            )
            self.assertTrue(client.is_remote)
            self.assertIsInstance(client.binding_store,
                                  DatabaseBindingStore)

    def test_context_manager(self):
        backend = mock.MagicMock()
        with UCenterClient(backend=backend) as client:
            client.request('user/get_user', {'username': 'foo'})
        backend.execute.assert_called_once_with('user/get_user',
                                                {'username': 'foo'})
        self.assertTrue(backend.close.called)


class TestFromConfig(TestCase):
    """:meth:`.UCenterClient.from_config` reads :mod:`ucenter.config`."""

    @mock.patch(f'{client_module.__name__}.config')
    def test_remote(self, mock_config):
        mock_config.UCENTER_BASE_URL = 'https://uc.example.com'
        mock_config.UCENTER_APP_ID = 'app'
        mock_config.UCENTER_SECRET = 'secret'
        mock_config.UCENTER_TIMEOUT = '5'
        mock_config.UCENTER_DATABASE_URI = None
        mock_config.UCENTER_BINDING_DATABASE_URI = None
        mock_config.UCENTER_EMAIL_DOMAIN = 'example.org'
        mock_config.UCENTER_SYSTEM_UID = '0'
        mock_config.JWT_SECRET = 'foosecret'
        mock_config.JWT_TTL = '60'
        mock_config.JWT_ISSUER = ''
        mock_config.JWT_AUDIENCE = ''

        client = UCenterClient.from_config()
        self.assertIsInstance(client.backend, RemoteBackend)
        self.assertEqual(client.backend.app_id, 'app')
        self.assertEqual(client.backend.timeout, 5)
        self.assertIsInstance(client.issuer, SessionIssuer)
        self.assertEqual(client.issuer.default_ttl, 60)
        self.assertEqual(client.email_domain, 'example.org')
        self.assertEqual(client.system_uid, 0)

    @mock.patch(f'{client_module.__name__}.config')
    def test_local(self, mock_config):
        mock_config.UCENTER_BASE_URL = ''
        mock_config.UCENTER_APP_ID = ''
        mock_config.UCENTER_SECRET = ''
        mock_config.UCENTER_TIMEOUT = '10'
        mock_config.UCENTER_DATABASE_URI = 'sqlite://'
        mock_config.UCENTER_BINDING_DATABASE_URI = 'sqlite://'
        mock_config.UCENTER_EMAIL_DOMAIN = ''
        mock_config.UCENTER_SYSTEM_UID = '1'
        mock_config.JWT_SECRET = None

        client = UCenterClient.from_config()
        self.assertIsInstance(client.backend, DatabaseBackend)
        self.assertIsInstance(client.binding_store, DatabaseBindingStore)
        self.assertIsNone(client.issuer)
        self.assertEqual(client.email_domain, DEFAULT_EMAIL_DOMAIN)
