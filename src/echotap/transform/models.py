"""
echotap Transformer Models

Request and response shapes exchanged between a host mock server and the
response transformers.
"""

import copy
import json
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple


@dataclass
class IncomingRequest:
    """Snapshot of the request a stub was matched for."""

    method: str
    url: str  # path + query, as routed
    absolute_url: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b''

    def body_as_string(self) -> str:
        """Decode the body as UTF-8, replacing undecodable bytes."""
        return self.body.decode('utf-8', errors='replace')

    def first_header(self, name: str) -> Optional[str]:
        """Return the first value of a header (case-insensitive), or None."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


@dataclass
class ResponseDefinition:
    """Response a stub serves, before and after transformation."""

    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    transformers: List[str] = field(default_factory=list)
    transformer_parameters: Dict[str, Any] = field(default_factory=dict)

    def has_empty_body(self) -> bool:
        """True when there is nothing to transform."""
        return self.body is None

    def with_body(self, body: str) -> 'ResponseDefinition':
        """Return a copy carrying a new body; the original stays untouched."""
        clone = copy.deepcopy(self)
        clone.body = body
        return clone

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ResponseDefinition':
        """
        Build from a stub file's ``response`` section.

        Accepts WireMock-style camelCase keys. ``jsonBody`` is serialized
        to text so transformers always see a string.
        """
        body = data.get('body')
        if body is None and 'jsonBody' in data:
            body = json.dumps(data['jsonBody'])

        return cls(
            status=int(data.get('status', 200)),
            headers=dict(data.get('headers') or {}),
            body=body,
            transformers=list(data.get('transformers') or []),
            transformer_parameters=dict(
                data.get('transformerParameters') or data.get('transformer_parameters') or {}
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'status': self.status,
            'headers': self.headers,
            'body': self.body,
            'transformers': self.transformers,
            'transformerParameters': self.transformer_parameters
        }


class ResponseTransformer:
    """
    Base class for response transformers.

    A host applies a transformer to a matched stub when the stub lists the
    transformer's name, or to every stub when ``apply_globally`` is True.
    """

    name: str = ''
    apply_globally: bool = False

    def transform(
        self,
        request: IncomingRequest,
        response: ResponseDefinition,
        parameters: Optional[Dict[str, Any]] = None
    ) -> ResponseDefinition:
        raise NotImplementedError
