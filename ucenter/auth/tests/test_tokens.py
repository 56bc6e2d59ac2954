"""Tests for :mod:`ucenter.auth.tokens`."""

from unittest import TestCase, mock
import string
import time

from hypothesis import given, settings
from hypothesis import strategies as st

from .. import tokens
from ...exceptions import ExpiredToken, InvalidSignature, InvalidToken, \
    MalformedToken, MissingToken, TokenNotYetValid


class TestIssueAndVerify(TestCase):
    """Tokens issued by a :class:`.SessionIssuer` verify with its secret."""

    def setUp(self):
        self.issuer = tokens.SessionIssuer('foosecret', default_ttl=600)

    def test_round_trip(self):
        token = self.issuer.issue({'sub': '42', 'username': 'foo'})
        self.assertEqual(len(token.split('.')), 3)
        claims = self.issuer.verify(token)
        self.assertEqual(claims['sub'], '42')
        self.assertEqual(claims['username'], 'foo')
        self.assertEqual(claims['iat'], claims['nbf'])
        self.assertEqual(claims['exp'] - claims['iat'], 600)

    def test_explicit_ttl(self):
        claims = self.issuer.verify(self.issuer.issue({'sub': '1'}, ttl=30))
        self.assertEqual(claims['exp'] - claims['iat'], 30)

    def test_secret_required(self):
        with self.assertRaises(ValueError):
            tokens.SessionIssuer('')

    @given(st.dictionaries(st.sampled_from(['sub', 'username', 'role']),
                           st.text(max_size=20)))
    @settings(max_examples=50)
    def test_claims_survive(self, claims):
        """Whatever claims go in come back out."""
        verified = self.issuer.verify(self.issuer.issue(claims))
        for key, value in claims.items():
            self.assertEqual(verified[key], value)

    def test_issuer_and_audience(self):
        issuer = tokens.SessionIssuer('foosecret', issuer='gateway',
                                      audience='app')
        claims = issuer.verify(issuer.issue({'sub': '1'}))
        self.assertEqual(claims['iss'], 'gateway')
        self.assertEqual(claims['aud'], 'app')

        with self.assertRaises(InvalidToken):
            issuer.verify(self.issuer.issue({'sub': '1'}))


class TestRejection(TestCase):
    """Bad tokens are rejected with a specific error."""

    def setUp(self):
        self.issuer = tokens.SessionIssuer('foosecret')

    def test_missing(self):
        with self.assertRaises(MissingToken):
            self.issuer.verify('')
        with self.assertRaises(MissingToken):
            self.issuer.verify(None)

    def test_malformed(self):
        with self.assertRaises(MalformedToken):
            self.issuer.verify('foo.bar')
        with self.assertRaises(MalformedToken):
            self.issuer.verify('not.a.token')

    def test_wrong_secret(self):
        other = tokens.SessionIssuer('othersecret')
        with self.assertRaises(InvalidSignature):
            self.issuer.verify(other.issue({'sub': '1'}))

    def test_tampered_payload(self):
        """Swapping in another payload breaks the signature."""
        header, _, signature = self.issuer.issue({'sub': '1'}).split('.')
        _, payload, _ = self.issuer.issue({'sub': '2'}).split('.')
        with self.assertRaises(InvalidSignature):
            self.issuer.verify(f'{header}.{payload}.{signature}')

    def test_every_payload_character(self):
        """Changing any one character of the payload breaks the signature."""
        alphabet = string.ascii_letters + string.digits + '-_'
        header, payload, signature = \
            self.issuer.issue({'sub': '1', 'username': 'foo'}).split('.')
        for i, current in enumerate(payload):
            for char in alphabet:
                if char == current:
                    continue
                changed = payload[:i] + char + payload[i + 1:]
                with self.assertRaises(InvalidSignature,
                                       msg=f'position {i}, {char!r}'):
                    self.issuer.verify(f'{header}.{changed}.{signature}')

    def test_expired(self):
        with self.assertRaises(ExpiredToken):
            self.issuer.verify(self.issuer.issue({'sub': '1'}, ttl=-10))

    @mock.patch(f'{tokens.__name__}.time')
    def test_not_yet_valid(self, mock_time):
        """A token issued in the future is not accepted yet."""
        mock_time.time.return_value = time.time() + 3600
        token = self.issuer.issue({'sub': '1'})
        with self.assertRaises(TokenNotYetValid):
            self.issuer.verify(token)

    def test_errors_are_invalid_token(self):
        """Callers can catch :class:`.InvalidToken` for all of these."""
        for error in (MissingToken, MalformedToken, InvalidSignature,
                      ExpiredToken, TokenNotYetValid):
            self.assertTrue(issubclass(error, InvalidToken))


class TestVerifyFromRequest(TestCase):
    """Tokens can come from the header, the query string or the body."""

    def setUp(self):
        self.issuer = tokens.SessionIssuer('foosecret')
        self.token = self.issuer.issue({'sub': '7'})

    def test_header(self):
        claims = self.issuer.verify_from_request(
            headers={'Authorization': f'Bearer {self.token}'}
        )
        self.assertEqual(claims['sub'], '7')

    def test_cgi_header(self):
        claims = self.issuer.verify_from_request(
            headers={'HTTP_AUTHORIZATION': f'bearer {self.token}'}
        )
        self.assertEqual(claims['sub'], '7')

    def test_query(self):
        claims = self.issuer.verify_from_request(
            query={'access_token': self.token}
        )
        self.assertEqual(claims['sub'], '7')

    def test_body(self):
        claims = self.issuer.verify_from_request(body={'token': self.token})
        self.assertEqual(claims['sub'], '7')

    def test_header_wins(self):
        self.assertEqual(
            tokens.extract_token({'Authorization': 'Bearer abc'},
                                 {'token': 'def'}),
            'abc'
        )

    def test_nothing(self):
        with self.assertRaises(MissingToken):
            self.issuer.verify_from_request(headers={'Accept': '*/*'})
