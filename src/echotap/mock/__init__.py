"""
echotap Mock Server Module

Mock HTTP server that answers from stub mappings with request-derived bodies.

This module provides:
- FastAPI-based mock server
- Stub mapping loading (JSON/YAML) and matching
- Wiring of the echotap response transformers
"""

from .server import MockServer, MockConfig, MockMetrics, create_mock_server
from .stubs import RequestPattern, StubMapping, StubLoader, StubMatcher, parse_mappings

__all__ = [
    # Server
    'MockServer',
    'MockConfig',
    'MockMetrics',
    'create_mock_server',

    # Stubs
    'RequestPattern',
    'StubMapping',
    'StubLoader',
    'StubMatcher',
    'parse_mappings',
]
