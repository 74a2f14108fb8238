"""
Tests for echotap Webhook Client

Tests the background POST helper including:
- Header defaults and overrides
- Body encoding
- Failure reporting on the returned future
- Dispatch delay and certificate settings
"""

from unittest.mock import Mock, patch

import pytest
import requests

from echotap.transform.errors import OutboundError
from echotap.transform.webhook import OutboundClient, WebhookConfig


URL = 'https://hooks.example.com/orders'


@pytest.fixture
def session():
    """Mock requests session answering 200."""
    session = Mock()
    session.post.return_value = Mock(status_code=200, text='ok')
    return session


@pytest.fixture
def client(session):
    """Client without dispatch delay."""
    client = OutboundClient(WebhookConfig(dispatch_delay_seconds=0), session=session)
    yield client
    client.shutdown(wait=True)


def sent_headers(session):
    return session.post.call_args.kwargs['headers']


class TestWebhookConfig:
    """Test WebhookConfig defaults."""

    def test_defaults(self):
        """Test default pool size, delay and certificate handling."""
        config = WebhookConfig()

        assert config.max_workers == 10
        assert config.dispatch_delay_seconds == 0.2
        assert config.trust_all_certificates is True
        assert config.default_content_type == 'application/json'


class TestOutboundClient:
    """Test OutboundClient."""

    def test_post_returns_response(self, client, session):
        """Test a successful POST resolves the future with the response."""
        response = client.post(URL, '{"id": 1}').result(timeout=5)

        assert response.status_code == 200
        session.post.assert_called_once()
        assert session.post.call_args.args[0] == URL
        assert session.post.call_args.kwargs['data'] == b'{"id": 1}'

    def test_default_content_type(self, client, session):
        """Test JSON content type is sent by default."""
        client.post(URL, '{}').result(timeout=5)

        assert sent_headers(session)['Content-Type'] == 'application/json'

    def test_content_type_override(self, client, session):
        """Test a caller header replaces the default regardless of case."""
        client.post(URL, 'a=1', {'content-type': 'text/plain', 'X-Trace': 'abc'}).result(timeout=5)

        headers = sent_headers(session)
        assert headers['Content-Type'] == 'text/plain'
        assert headers['x-trace'] == 'abc'
        assert len(headers) == 2

    def test_post_with_header(self, client, session):
        """Test the single-header variant."""
        client.post_with_header(URL, '{}', 'X-Signature', 'sig').result(timeout=5)

        assert sent_headers(session)['X-Signature'] == 'sig'

    def test_dict_body_is_json(self, client, session):
        """Test structured bodies are serialized."""
        client.post(URL, {'id': 1, 'tags': ['a']}).result(timeout=5)

        assert session.post.call_args.kwargs['data'] == b'{"id": 1, "tags": ["a"]}'

    def test_certificates_not_verified_by_default(self, client, session):
        """Test trust-all mode disables verification."""
        client.post(URL, '{}').result(timeout=5)

        assert session.post.call_args.kwargs['verify'] is False
        assert session.post.call_args.kwargs['timeout'] == 30

    def test_certificates_verified_when_configured(self, session):
        """Test verification can be turned back on."""
        client = OutboundClient(
            WebhookConfig(dispatch_delay_seconds=0, trust_all_certificates=False),
            session=session
        )
        try:
            client.post(URL, '{}').result(timeout=5)
        finally:
            client.shutdown()

        assert session.post.call_args.kwargs['verify'] is True

    def test_non_2xx_fails_future(self, client, session):
        """Test an error status is reported on the future."""
        session.post.return_value = Mock(status_code=500, text='boom')

        future = client.post(URL, '{}')
        error = future.exception(timeout=5)

        assert isinstance(error, OutboundError)
        assert error.status_code == 500
        assert error.url == URL

    def test_connection_error_fails_future(self, client, session):
        """Test a transport failure does not raise into the caller."""
        session.post.side_effect = requests.exceptions.ConnectionError('refused')

        future = client.post(URL, '{}')
        error = future.exception(timeout=5)

        assert isinstance(error, OutboundError)
        assert error.status_code is None

    def test_closed_client(self, session):
        """Test posting after shutdown gives a failed future."""
        client = OutboundClient(WebhookConfig(dispatch_delay_seconds=0), session=session)
        client.shutdown()

        future = client.post(URL, '{}')

        assert isinstance(future.exception(timeout=1), OutboundError)
        session.post.assert_not_called()

    @patch('echotap.transform.webhook.time.sleep')
    def test_dispatch_delay(self, mock_sleep, session):
        """Test each call waits the configured delay before sending."""
        client = OutboundClient(WebhookConfig(), session=session)
        try:
            client.post(URL, '{}').result(timeout=5)
        finally:
            client.shutdown()

        mock_sleep.assert_called_once_with(0.2)

    def test_created_session_has_no_retries(self):
        """Test the default session mounts an adapter sized to the pool."""
        client = OutboundClient(WebhookConfig(max_workers=3))
        try:
            adapter = client.session.get_adapter('https://hooks.example.com')
            assert adapter.max_retries.total == 0
            assert adapter._pool_maxsize == 3
        finally:
            client.shutdown()
