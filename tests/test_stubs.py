"""
Tests for echotap Stub Mappings

Tests stub loading (JSON, YAML), request matching and URL splitting.
"""

import json

import pytest
import yaml

from echotap.common import URLParts
from echotap.mock.stubs import (
    RequestPattern,
    StubLoader,
    StubMapping,
    StubMatcher,
    parse_mappings
)


@pytest.fixture
def mapping_data():
    """Stub mappings in WireMock export format."""
    return {
        'mappings': [
            {
                'name': 'param',
                'request': {'method': 'POST', 'urlPattern': '/param/[0-9]+?'},
                'response': {
                    'status': 200,
                    'body': '{"var": "$(var)"}',
                    'transformers': ['body-transformer'],
                    'transformerParameters': {'urlRegex': '/param/(?<var>.*?)'}
                }
            },
            {
                'request': {'method': 'GET', 'urlPath': '/search'},
                'response': {'status': 204}
            }
        ]
    }


class TestStubLoader:
    """Test StubLoader."""

    def test_load_json(self, tmp_path, mapping_data):
        """Test a JSON stub file."""
        path = tmp_path / 'mappings.json'
        path.write_text(json.dumps(mapping_data))

        stubs = StubLoader(str(path)).load()

        assert len(stubs) == 2
        assert stubs[0].name == 'param'
        assert stubs[0].response.transformer_parameters == {'urlRegex': '/param/(?<var>.*?)'}

    def test_load_yaml(self, tmp_path, mapping_data):
        """Test a YAML stub file."""
        path = tmp_path / 'mappings.yaml'
        path.write_text(yaml.safe_dump(mapping_data))

        stubs = StubLoader(str(path)).load()

        assert [stub.request.method for stub in stubs] == ['POST', 'GET']
        assert stubs[1].response.body is None

    def test_load_list_format(self, tmp_path, mapping_data):
        """Test a bare list of mappings."""
        path = tmp_path / 'mappings.json'
        path.write_text(json.dumps(mapping_data['mappings']))

        assert len(StubLoader(str(path)).load()) == 2

    def test_file_not_found(self, tmp_path):
        """Test a missing file."""
        with pytest.raises(FileNotFoundError):
            StubLoader(str(tmp_path / 'missing.json')).load()

    def test_unexpected_format(self):
        """Test a dict without mappings."""
        with pytest.raises(ValueError, match="Expected dict with 'mappings' key"):
            parse_mappings({'requests': []})

    def test_non_object_entry(self):
        """Test a mapping that is not an object."""
        with pytest.raises(ValueError, match='Mapping #0'):
            parse_mappings(['nope'])


class TestRequestPattern:
    """Test RequestPattern matching."""

    def test_exact_url(self):
        """Test exact path and query."""
        pattern = RequestPattern(url='/test?foo=bar')

        assert pattern.matches('GET', '/test?foo=bar')
        assert not pattern.matches('GET', '/test')

    def test_url_pattern_matches_whole_url(self):
        """Test regex patterns are anchored at both ends."""
        pattern = RequestPattern(url_pattern='/param/[0-9]+?')

        assert pattern.matches('POST', '/param/10')
        assert not pattern.matches('POST', '/param/10/extra')

    def test_url_path_ignores_query(self):
        """Test path-only matching."""
        pattern = RequestPattern(url_path='/search')

        assert pattern.matches('GET', '/search?q=books')

    def test_method(self):
        """Test method filtering, case-insensitive."""
        pattern = RequestPattern.from_dict({'method': 'post', 'url': '/a'})

        assert pattern.matches('POST', '/a')
        assert not pattern.matches('GET', '/a')
        assert RequestPattern(url='/a').matches('DELETE', '/a')

    def test_to_dict(self):
        """Test camelCase export."""
        assert RequestPattern(method='GET', url_pattern='/x').to_dict() == {'method': 'GET', 'urlPattern': '/x'}


class TestStubMatcher:
    """Test StubMatcher."""

    def test_first_match_wins(self, mapping_data):
        """Test definition order decides between overlapping stubs."""
        stubs = parse_mappings(mapping_data) + [StubMapping.from_dict({
            'name': 'catch-all',
            'request': {'method': 'ANY'},
            'response': {'body': 'fallback'}
        })]
        matcher = StubMatcher(stubs)

        assert matcher.find('POST', '/param/10').name == 'param'
        assert matcher.find('GET', '/other').name == 'catch-all'

    def test_no_match(self, mapping_data):
        """Test None when nothing matches."""
        assert StubMatcher(parse_mappings(mapping_data)).find('PUT', '/nothing') is None


class TestURLParts:
    """Test URL splitting."""

    def test_relative_url(self):
        """Test path plus query, fragment dropped."""
        assert URLParts.relative_url('http://localhost:8080/test?foo=bar#top') == '/test?foo=bar'
        assert URLParts.relative_url('http://localhost:8080') == '/'

    def test_absolute_url(self):
        """Test relative URLs are joined to the base."""
        assert URLParts.absolute_url('/orders/10?x=1') == 'http://localhost/orders/10?x=1'
        assert URLParts.absolute_url('https://api.example.com/a') == 'https://api.example.com/a'

    def test_split(self):
        """Test both forms at once."""
        assert URLParts.split('/a?b=1', 'http://mock:9090') == ('/a?b=1', 'http://mock:9090/a?b=1')
