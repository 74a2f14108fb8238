"""
echotap Transform Module

Request normalization and response templating for mock servers.

This module provides:
- Body decoding (JSON, XML, key=value, query string) into a request tree
- Dotted/indexed path resolution over that tree
- ``$(path)`` placeholder interpolation
- Jinja2 templating with session, counter and helper functions
- Background webhook POSTs
"""

from .errors import (
    TransformError,
    BodyFormatError,
    PathError,
    NotAListError,
    IndexOutOfBoundsError,
    CapturePatternError,
    TemplateEvaluationError,
    OutboundError
)
from .models import IncomingRequest, ResponseDefinition, ResponseTransformer
from .decoder import BodyDecoder, DecodeResult, parse_key_value_pairs
from .paths import PathResolver, resolve, resolve_text, stringify
from .interpolator import PlaceholderInterpolator
from .request_map import RequestMapBuilder, extract_url_captures
from .state import SessionStore, Counter
from .webhook import OutboundClient, WebhookConfig
from .context import TemplateContextBuilder, TemplateRenderer, TemplateUtils
from .transformers import BodyTransformer, TemplateBodyTransformer

__all__ = [
    # Errors
    'TransformError',
    'BodyFormatError',
    'PathError',
    'NotAListError',
    'IndexOutOfBoundsError',
    'CapturePatternError',
    'TemplateEvaluationError',
    'OutboundError',

    # Models
    'IncomingRequest',
    'ResponseDefinition',
    'ResponseTransformer',

    # Request tree
    'BodyDecoder',
    'DecodeResult',
    'parse_key_value_pairs',
    'PathResolver',
    'resolve',
    'resolve_text',
    'stringify',
    'RequestMapBuilder',
    'extract_url_captures',

    # Rendering
    'PlaceholderInterpolator',
    'TemplateContextBuilder',
    'TemplateRenderer',
    'TemplateUtils',

    # Shared state and webhooks
    'SessionStore',
    'Counter',
    'OutboundClient',
    'WebhookConfig',

    # Transformers
    'BodyTransformer',
    'TemplateBodyTransformer',
]
