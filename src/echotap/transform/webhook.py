"""
echotap Webhook Client

Background HTTP POST used by templates to simulate outbound webhooks.

Calls are queued on a small thread pool and each waits a short fixed delay
before being sent, so the webhook does not overtake the response that
triggered it. The caller gets a Future and is never blocked or raised into.

SECURITY: with ``trust_all_certificates`` (the default) server certificates
are NOT validated. This client exists for mock and test environments only
and must not be reused on a production network path.
"""

import json
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict

from .errors import OutboundError

logger = logging.getLogger(__name__)

HeaderPairs = Union[Dict[str, str], Iterable[Tuple[str, str]]]


@dataclass
class WebhookConfig:
    """Configuration for outbound webhook calls."""

    max_workers: int = 10
    dispatch_delay_seconds: float = 0.2
    timeout: int = 30
    trust_all_certificates: bool = True  # mock tooling only, see module docstring
    default_content_type: str = 'application/json'


class OutboundClient:
    """
    Fire-and-forget POST helper.

    Example:
        client = OutboundClient()
        future = client.post('https://hooks.example.com/orders', '{"id": 1}')
        client.post_with_header(url, body, 'X-Signature', 'abc')

        # Optional: wait for the outcome (tests, CLI)
        response = future.result(timeout=5)
    """

    def __init__(
        self,
        config: Optional[WebhookConfig] = None,
        session: Optional[requests.Session] = None
    ):
        self.config = config or WebhookConfig()
        self.session = session or self._create_session()
        self.executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix='echotap-webhook'
        )

        if self.config.trust_all_certificates:
            logger.warning("Webhook certificate validation is disabled (mock/test use only)")

    def _create_session(self) -> requests.Session:
        """Create HTTP session sized to the worker pool, without retries."""
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=self.config.max_workers,
            pool_maxsize=self.config.max_workers,
            max_retries=0
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def post(self, url: str, body: Any, headers: Optional[HeaderPairs] = None) -> Future:
        """
        Queue a POST request.

        Args:
            url: Target URL
            body: Request body; dicts and lists are sent as JSON
            headers: Extra headers (dict or ``(name, value)`` pairs), applied
                in order over the default Content-Type

        Returns:
            Future resolving to the ``requests.Response``, or failing with
            OutboundError
        """
        request_headers = self._build_headers(headers)
        payload = self._encode_body(body)

        try:
            return self.executor.submit(self._dispatch, url, payload, request_headers)
        except RuntimeError as e:
            # Pool already shut down
            future = Future()
            future.set_exception(OutboundError(f"Webhook client is closed: {e}", url=url))
            return future

    def post_with_header(self, url: str, body: Any, name: str, value: str) -> Future:
        """Queue a POST with a single extra header."""
        return self.post(url, body, [(name, value)])

    def shutdown(self, wait: bool = True):
        """Stop accepting calls and release the pool."""
        self.executor.shutdown(wait=wait)
        self.session.close()

    def _build_headers(self, headers: Optional[HeaderPairs]) -> CaseInsensitiveDict:
        result = CaseInsensitiveDict({'Content-Type': self.config.default_content_type})
        if headers:
            pairs = headers.items() if isinstance(headers, dict) else headers
            for name, value in pairs:
                result[name] = value
        return result

    @staticmethod
    def _encode_body(body: Any) -> bytes:
        if body is None:
            return b''
        if isinstance(body, bytes):
            return body
        if isinstance(body, str):
            return body.encode('utf-8')
        return json.dumps(body, default=str).encode('utf-8')

    def _dispatch(self, url: str, payload: bytes, headers: CaseInsensitiveDict) -> requests.Response:
        time.sleep(self.config.dispatch_delay_seconds)

        try:
            response = self.session.post(
                url,
                data=payload,
                headers=headers,
                timeout=self.config.timeout,
                verify=not self.config.trust_all_certificates
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"post - request to {url} failed: {e}")
            raise OutboundError(f"Webhook request to {url} failed: {e}", url=url) from e

        logger.info(f"post - request to {url} returned status {response.status_code}\n\n{response.text}")

        if not 200 <= response.status_code < 300:
            logger.warning(f"post - webhook {url} answered with non-2xx status {response.status_code}")
            raise OutboundError(
                f"Webhook {url} returned status {response.status_code}",
                url=url,
                status_code=response.status_code
            )
        return response
