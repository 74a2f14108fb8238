"""
echotap Template Context

Builds the evaluation context of the richer template mode and renders
templates against it with Jinja2.

Template syntax (Jinja2 with bracket delimiters, so JSON braces never clash):
- ``[( expr )]``          expression, e.g. ``[( utils.uuid() )]``
- ``[% stmt %]``          statement, e.g. ``[% for i in utils.list(3) %]``
- ``[# comment #]``       comment
- ``[% do expr %]``       evaluate for side effects only

Context names:
- every top-level key of the request tree
- every request header, name stripped of separators (``x-jwt`` -> ``xjwt``)
- ``session``, ``counter``, ``utils``, ``http``
"""

import logging
import random
import re
import secrets
import threading
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jinja2 import BaseLoader, Environment, StrictUndefined
from jose import jwt as jose_jwt

from .errors import TemplateEvaluationError
from .paths import stringify
from .state import SessionStore, Counter
from .webhook import OutboundClient

logger = logging.getLogger(__name__)

JWT_KEY_SIZE = 2048
JWT_KEY_ID = 'k1'
JWT_ALGORITHM = 'RS256'
JWT_EXPIRY_SECONDS = 10 * 60
JWT_NOT_BEFORE_SKEW_SECONDS = 2 * 60

_HEADER_SEPARATORS = re.compile(r'[^0-9A-Za-z_]')


def header_variable_name(name: str) -> str:
    """Turn a header name into a template variable name (``foo-bar`` -> ``foobar``)."""
    return _HEADER_SEPARATORS.sub('', name)


class TemplateUtils:
    """
    Helper namespace exposed to templates as ``utils``.

    The RSA signing key is generated on first use and kept for the lifetime
    of the instance; hosts create one instance per process.
    """

    def __init__(self, rng: Optional[random.Random] = None, key_size: int = JWT_KEY_SIZE):
        self._random = rng or random.Random()
        self.key_size = key_size
        self._private_key = None
        self._key_lock = threading.Lock()

    def uuid(self) -> str:
        return str(uuid.uuid4())

    def list(self, size: int) -> List[int]:
        """Integers ``0 .. size-1``, handy for loops."""
        return [i for i in range(int(size))]

    def random(self) -> random.Random:
        """Shared random source, e.g. ``utils.random().randint(1, 6)``."""
        return self._random

    def now(self) -> datetime:
        """Current local time, e.g. ``utils.now().isoformat()``."""
        return datetime.now()

    def jwt(self, subject: str) -> str:
        """
        Mint an RS256 token for ``subject``.

        Claims: exp (10 minutes ahead), jti (random), iat (now),
        nbf (2 minutes ago), sub.
        """
        now = int(time.time())
        claims = {
            'exp': now + JWT_EXPIRY_SECONDS,
            'jti': secrets.token_urlsafe(16),
            'iat': now,
            'nbf': now - JWT_NOT_BEFORE_SKEW_SECONDS,
            'sub': subject
        }
        return jose_jwt.encode(
            claims,
            self._private_key_pem(),
            algorithm=JWT_ALGORITHM,
            headers={'kid': JWT_KEY_ID}
        )

    def access_token(self, token: str, print_claims: bool = False) -> Dict[str, Any]:
        """
        Read the claims of any signed token.

        Neither the signature nor exp/nbf/aud are checked. The mock server is
        not a trust boundary; never use this to authenticate anything.
        """
        claims = jose_jwt.get_unverified_claims(token)
        if print_claims:
            for name, value in claims.items():
                logger.info(f"accessToken - claim {name}: {value}")
        return claims

    # camelCase name used by existing WireMock stub templates
    accessToken = access_token

    def public_key_pem(self) -> str:
        """PEM encoded public half of the signing key, for verifying minted tokens."""
        public_key = self._signing_key().public_key()
        return public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode('ascii')

    def _signing_key(self):
        with self._key_lock:
            if self._private_key is None:
                logger.debug(f"Generating {self.key_size}-bit RSA key for template tokens")
                self._private_key = rsa.generate_private_key(public_exponent=65537, key_size=self.key_size)
            return self._private_key

    def _private_key_pem(self) -> str:
        return self._signing_key().private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption()
        ).decode('ascii')


class TemplateContextBuilder:
    """
    Assemble the context handed to the template renderer.

    Session, counter, utils and the webhook client are process-wide and
    injected by the host, so every request sees the same instances.
    """

    def __init__(
        self,
        session: SessionStore,
        counter: Counter,
        utils: TemplateUtils,
        http: OutboundClient
    ):
        self.session = session
        self.counter = counter
        self.utils = utils
        self.http = http

    def build_context(
        self,
        request_map: Dict[str, Any],
        headers: Optional[Iterable[Tuple[str, str]]] = None
    ) -> Dict[str, Any]:
        """
        Args:
            request_map: Request tree with capture-group overrides applied
            headers: Request headers as ordered ``(name, value)`` pairs

        Returns:
            Template context; headers override body keys, and the fixed names
            (session, counter, utils, http) override both
        """
        context = dict(request_map)

        seen = set()
        for name, value in headers or []:
            key = header_variable_name(name)
            if not key or key in seen:
                continue
            seen.add(key)
            context[key] = value

        context['session'] = self.session
        context['counter'] = self.counter
        context['utils'] = self.utils
        context['http'] = self.http
        return context


def _finalize(value: Any) -> Any:
    if value is None:
        return ''
    if isinstance(value, (dict, list, tuple, bool, int, float, Decimal)):
        return stringify(value)
    return value


class TemplateRenderer:
    """
    Jinja2 evaluation of richer-mode templates.

    JSON numbers with a fraction arrive as ``decimal.Decimal``, which does
    not mix with float literals: ``[( price * 1.1 )]`` raises. Coerce first
    with the ``float`` filter, ``[( price|float * 1.1 )]``, or keep both
    sides integral.
    """

    def __init__(self):
        self.environment = Environment(
            loader=BaseLoader(),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            extensions=['jinja2.ext.do'],
            finalize=_finalize,
            variable_start_string='[(',
            variable_end_string=')]',
            block_start_string='[%',
            block_end_string='%]',
            comment_start_string='[#',
            comment_end_string='#]'
        )

    def render(self, template: str, context: Dict[str, Any]) -> str:
        """
        Raises:
            TemplateEvaluationError: Syntax error, undefined name, or an
                exception raised by a helper
        """
        try:
            return self.environment.from_string(template).render(context)
        except Exception as e:
            logger.error(f"Template evaluation failed: {type(e).__name__}: {e}")
            raise TemplateEvaluationError(f"Template evaluation failed: {e}") from e
