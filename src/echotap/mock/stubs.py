"""
echotap Stub Mappings

Loading and matching of stub definitions for the mock server.

Stub files use WireMock-style JSON or YAML:

    {"mappings": [
        {"request": {"method": "POST", "urlPattern": "/param/[0-9]+?"},
         "response": {"status": 200,
                      "headers": {"Content-Type": "application/json"},
                      "body": "{\\"var\\": \\"$(var)\\"}",
                      "transformers": ["body-transformer"],
                      "transformerParameters": {"urlRegex": "/param/(?<var>.*?)"}}}
    ]}
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Dict, Any, Optional, Pattern

import yaml

from ..common import URLParts
from ..transform import ResponseDefinition


@dataclass
class RequestPattern:
    """Which requests a stub answers."""

    method: str = 'ANY'
    url: Optional[str] = None  # exact path + query
    url_pattern: Optional[str] = None  # regex over path + query
    url_path: Optional[str] = None  # exact path, query ignored
    _compiled: Optional[Pattern] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RequestPattern':
        """Create RequestPattern from dictionary."""
        return cls(
            method=str(data.get('method', 'ANY')).upper(),
            url=data.get('url'),
            url_pattern=data.get('urlPattern') or data.get('url_pattern'),
            url_path=data.get('urlPath') or data.get('url_path')
        )

    def matches(self, method: str, url: str) -> bool:
        """
        Check a request against this pattern.

        Args:
            method: HTTP method
            url: Relative URL (path + query)
        """
        if self.method != 'ANY' and self.method != method.upper():
            return False

        if self.url is not None:
            return url == self.url
        if self.url_pattern is not None:
            if self._compiled is None:
                self._compiled = re.compile(self.url_pattern)
            return self._compiled.fullmatch(url) is not None
        if self.url_path is not None:
            return URLParts.path_only(url) == self.url_path
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {'method': self.method}
        if self.url is not None:
            data['url'] = self.url
        if self.url_pattern is not None:
            data['urlPattern'] = self.url_pattern
        if self.url_path is not None:
            data['urlPath'] = self.url_path
        return data


@dataclass
class StubMapping:
    """A request pattern paired with the response to serve."""

    request: RequestPattern
    response: ResponseDefinition
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StubMapping':
        """Create StubMapping from dictionary."""
        return cls(
            request=RequestPattern.from_dict(data.get('request') or {}),
            response=ResponseDefinition.from_dict(data.get('response') or {}),
            name=data.get('name')
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'request': self.request.to_dict(),
            'response': self.response.to_dict()
        }


class StubLoader:
    """
    Loader for stub mapping files.

    Handles:
    - Format 1: {"mappings": [...]}  (WireMock export format)
    - Format 2: [...]                (direct list format)
    - JSON, or YAML when the file ends in .yaml/.yml

    Example:
        stubs = StubLoader("mappings.yaml").load()
    """

    def __init__(self, file_path: str):
        """
        Initialize stub loader.

        Args:
            file_path: Path to stub mapping file
        """
        self.file_path = Path(file_path)

    def load(self) -> List[StubMapping]:
        """
        Load stub mappings.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the content has an unrecognized shape
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Stub file not found: {self.file_path}")

        with open(self.file_path, 'r', encoding='utf-8') as f:
            if self.file_path.suffix.lower() in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        return parse_mappings(data, source=str(self.file_path))


def parse_mappings(data: Any, source: str = '<memory>') -> List[StubMapping]:
    """Turn already-parsed stub data into StubMapping objects."""
    if isinstance(data, dict):
        if 'mappings' not in data:
            raise ValueError(
                f"Unexpected stub format in {source}. "
                f"Expected dict with 'mappings' key or a list of mappings. "
                f"Found keys: {list(data.keys())}"
            )
        entries = data['mappings'] or []
    elif isinstance(data, list):
        entries = data
    else:
        raise ValueError(
            f"Unexpected stub format in {source}. "
            f"Expected dict or list, got {type(data).__name__}"
        )

    mappings = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"Mapping #{index} in {source} is not an object")
        mappings.append(StubMapping.from_dict(entry))
    return mappings


class StubMatcher:
    """First-match lookup over stubs in definition order."""

    def __init__(self, stubs: List[StubMapping]):
        self.stubs = stubs

    def find(self, method: str, url: str) -> Optional[StubMapping]:
        for stub in self.stubs:
            if stub.request.matches(method, url):
                return stub
        return None
