"""
Tests for echotap Request Map Builder

Tests urlRegex capture groups including:
- Named group syntax
- Whole-URL matching
- Overriding decoded body keys
- Malformed patterns
"""

import pytest

from echotap.transform.errors import CapturePatternError
from echotap.transform.models import IncomingRequest
from echotap.transform.request_map import (
    RequestMapBuilder,
    compile_url_pattern,
    extract_url_captures
)


def make_request(url, body=b'', headers=None):
    """Build an IncomingRequest for a relative URL."""
    return IncomingRequest(
        method='POST',
        url=url,
        absolute_url=f'http://localhost:8080{url}',
        headers=headers or [],
        body=body
    )


@pytest.fixture
def builder():
    """Request map builder with the default decoder."""
    return RequestMapBuilder()


class TestUrlCaptures:
    """Test named group extraction."""

    def test_angle_bracket_groups(self):
        """Test (?<name>...) groups."""
        assert extract_url_captures('/param/(?<var>.*?)', '/param/10') == {'var': '10'}

    def test_python_groups(self):
        """Test (?P<name>...) groups."""
        assert extract_url_captures(r'/param/(?P<var>\d+)', '/param/10') == {'var': '10'}

    def test_multiple_groups(self):
        """Test several groups in one pattern."""
        captures = extract_url_captures(
            '/param/(?<var>.*?)/(?<var2>.*?)/(?<var3>.*?)',
            '/param/10/20/30'
        )

        assert captures == {'var': '10', 'var2': '20', 'var3': '30'}

    def test_pattern_must_match_whole_url(self):
        """Test a partial match yields nothing."""
        assert extract_url_captures('/param/(?<var>[0-9]+)', '/param/10/extra') == {}

    def test_no_match(self):
        """Test a non-matching URL."""
        assert extract_url_captures('/other/(?<var>.*?)', '/param/10') == {}

    def test_non_participating_group_is_skipped(self):
        """Test an optional group that did not match is left out."""
        assert extract_url_captures(r'/a(?:/(?<id>\d+))?', '/a') == {}

    def test_lookbehind_is_untouched(self):
        """Test lookbehind syntax is not mistaken for a named group."""
        assert extract_url_captures(r'/p/(?<=p/)(?<id>\d+)', '/p/10') == {'id': '10'}

    def test_invalid_pattern(self):
        """Test a malformed regex."""
        with pytest.raises(CapturePatternError) as exc_info:
            compile_url_pattern('/param/(?<>.*?)')

        assert exc_info.value.pattern == '/param/(?<>.*?)'


class TestRequestMapBuilder:
    """Test building the request map."""

    def test_body_only(self, builder):
        """Test no urlRegex leaves the decoded body."""
        request_map = builder.build(make_request('/get/this', b'{"var":1111}'))

        assert request_map == {'var': 1111}

    def test_captures_without_body(self, builder):
        """Test captures on a bodyless GET."""
        request_map = builder.build(
            make_request('/param/10/20/30'),
            {'urlRegex': '/param/(?<var>.*?)/(?<var2>.*?)/(?<var3>.*?)'}
        )

        assert request_map == {'var': '10', 'var2': '20', 'var3': '30'}

    def test_captures_override_json(self, builder):
        """Test a capture replaces the same-named JSON key."""
        request_map = builder.build(
            make_request('/param/10', b'{"var":"11", "other":"kept"}'),
            {'urlRegex': '/param/(?<var>.*?)'}
        )

        assert request_map == {'var': '10', 'other': 'kept'}

    def test_captures_override_xml_root_value(self, builder):
        """Test a capture named 'value' replaces the XML root text."""
        request_map = builder.build(
            make_request('/param/10', b'<test>11</test>'),
            {'urlRegex': '/param/(?<value>.*?)'}
        )

        assert request_map == {'value': '10'}

    def test_captures_override_form(self, builder):
        """Test a capture replaces the same-named form field."""
        request_map = builder.build(
            make_request('/param/10', b'var=11'),
            {'urlRegex': '/param/(?<var>.*?)'}
        )

        assert request_map == {'var': '10'}

    def test_captures_match_against_relative_url(self, builder):
        """Test the query string is part of the matched URL."""
        request_map = builder.build(
            make_request('/search?q=books'),
            {'urlRegex': r'/search\?q=(?<q>.*)'}
        )

        assert request_map['q'] == 'books'

    def test_invalid_pattern_raises(self, builder):
        """Test a malformed urlRegex fails the build."""
        with pytest.raises(CapturePatternError):
            builder.build(make_request('/param/10'), {'urlRegex': '/param/(?<>.*?)'})
