"""Tests for :mod:`ucenter.backend.remote`."""

from unittest import TestCase, mock
from typing import Any
from urllib.parse import parse_qs

import requests

from .. import remote
from ...auth.signing import build_sign
from ...exceptions import ProtocolFormatError, RequestFailed, \
    TokenFetchFailed, TransportError


def _response(text: str = '', status_code: int = 200,
              json: Any = None) -> mock.MagicMock:
    response = mock.MagicMock(status_code=status_code, text=text)
    if json is None:
        response.json.side_effect = ValueError
    else:
        response.json.return_value = json
    return response


def _session(mock_session: Any, *responses: Any) -> mock.MagicMock:
    """Make the patched session answer with ``responses`` in order."""
    mock_session_instance = mock.MagicMock()
    mock_session_instance.post.side_effect = list(responses)
    mock_session.return_value = mock_session_instance
    return mock_session_instance


TOKEN = _response('{"token": "bearer-foo", "expires_in": 3600}')


class TestSignedCalls(TestCase):
    """Every call is signed; all but ``token`` carry the bearer token."""

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_headers(self, mock_session: Any) -> None:
        session = _session(mock_session, TOKEN,
                           _response('{"status": 5, "username": "foo"}'))
        backend = remote.RemoteBackend('https://uc.example.com/', 'app',
                                       'secret')
        result = backend.execute('user/login', {'username': 'foo'})
        self.assertEqual(result['status'], 5)

        (token_url,), token_kwargs = session.post.call_args_list[0]
        self.assertEqual(token_url, 'https://uc.example.com/api/?/token')
        self.assertNotIn('token', token_kwargs['headers'])

        (url,), kwargs = session.post.call_args_list[1]
        self.assertEqual(url, 'https://uc.example.com/api/?/user/login')
        headers = kwargs['headers']
        self.assertEqual(headers['appid'], 'app')
        self.assertEqual(headers['token'], 'bearer-foo')
        self.assertEqual(headers['sign'],
                         build_sign(headers['nonce'], int(headers['t']),
                                    'secret'))
        self.assertEqual(parse_qs(kwargs['data']), {'username': ['foo']})
        self.assertEqual(kwargs['timeout'], 10)

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_token_reused(self, mock_session: Any) -> None:
        """The bearer token is fetched once for many calls."""
        session = _session(mock_session, TOKEN, _response('1'),
                           _response('1'))
        backend = remote.RemoteBackend('https://uc.example.com', 'app',
                                       'secret')
        backend.execute('friend/add')
        backend.execute('friend/add')
        self.assertEqual(session.post.call_count, 3)
        self.assertEqual(backend.get_token(), 'bearer-foo')

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_no_token(self, mock_session: Any) -> None:
        """If no bearer token is issued, the call is not made."""
        session = _session(mock_session, _response('{"ret": -1}'))
        backend = remote.RemoteBackend('https://uc.example.com', 'app',
                                       'secret')
        with self.assertRaises(TokenFetchFailed):
            backend.execute('user/login')
        self.assertEqual(session.post.call_count, 1)

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_close(self, mock_session: Any) -> None:
        session = _session(mock_session, TOKEN, _response('1'))
        backend = remote.RemoteBackend('https://uc.example.com', 'app',
                                       'secret')
        backend.execute('friend/add')
        backend.close()
        self.assertIsNone(backend.tokens.current)
        self.assertTrue(session.close.called)


class TestResponses(TestCase):
    """Responses are decoded, or turned into errors."""

    def _execute(self, mock_session: Any, response: Any) -> Any:
        _session(mock_session, TOKEN, response)
        backend = remote.RemoteBackend('https://uc.example.com', 'app',
                                       'secret')
        return backend.execute('user/edit', {'uid': 1})

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_empty(self, mock_session: Any) -> None:
        self.assertEqual(self._execute(mock_session, _response('')),
                         {'ret': 0})

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_integer(self, mock_session: Any) -> None:
        self.assertEqual(self._execute(mock_session, _response(' -3\n')),
                         {'ret': -3})

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_list(self, mock_session: Any) -> None:
        self.assertEqual(self._execute(mock_session, _response('[1, 2]')),
                         [1, 2])

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_html(self, mock_session: Any) -> None:
        with self.assertRaises(ProtocolFormatError) as ctx:
            self._execute(mock_session, _response('<html>' + 'x' * 500))
        self.assertEqual(len(ctx.exception.response), remote.TRUNCATE)

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_json_scalar(self, mock_session: Any) -> None:
        """JSON that is neither an object nor an array is not accepted."""
        for body in ('null', '"x"', '3.5', 'true'):
            with self.assertRaises(ProtocolFormatError, msg=body):
                self._execute(mock_session, _response(body))

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_http_error(self, mock_session: Any) -> None:
        """An error status wins over the body."""
        response = _response('{"message": "Bad app"}', status_code=403,
                             json={'message': 'Bad app'})
        with self.assertRaises(RequestFailed) as ctx:
            self._execute(mock_session, response)
        self.assertEqual(ctx.exception.code, 403)
        self.assertEqual(str(ctx.exception), 'Bad app')
        self.assertEqual(ctx.exception.response, {'message': 'Bad app'})

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_http_error_without_json(self, mock_session: Any) -> None:
        with self.assertRaises(RequestFailed) as ctx:
            self._execute(mock_session, _response('oops', status_code=500))
        self.assertEqual(ctx.exception.code, 500)
        self.assertIsNone(ctx.exception.response)

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_connection_error(self, mock_session: Any) -> None:
        error = requests.exceptions.ConnectionError('no route')
        with self.assertRaises(TransportError):
            self._execute(mock_session, error)

    @mock.patch(f'{remote.__name__}.requests.Session')
    def test_raw(self, mock_session: Any) -> None:
        """Raw calls hand back the body, HTML and all."""
        _session(mock_session, TOKEN, _response('<script src="x"></script>'))
        backend = remote.RemoteBackend('https://uc.example.com', 'app',
                                       'secret')
        self.assertEqual(backend.execute_raw('user/synlogin', {'uid': 1}),
                         '<script src="x"></script>')


class TestEncodeParams(TestCase):
    def test_nested(self):
        self.assertEqual(
            remote.encode_params({'uid': [1, 2], 'ok': True, 'skip': None,
                                  'name': 'a b'}),
            'uid%5B0%5D=1&uid%5B1%5D=2&ok=1&name=a%20b'
        )

    def test_dict(self):
        self.assertEqual(parse_qs(remote.encode_params({'p': {'x': 'y'}})),
                         {'p[x]': ['y']})

    def test_empty(self):
        self.assertEqual(remote.encode_params(None), '')
