"""
echotap Body Decoder

Turns a request body of unknown encoding into a plain tree of dicts, lists
and scalars that field paths can address.

Formats are tried in order and the first success wins:
- JSON object
- XML document
- key=value pairs (form encoding)
- query string of the absolute URL

XML is mapped the way data-binding XML readers do it: the document element's
tag is dropped, text-only children become strings, attributes become sibling
keys next to a ``value`` key holding the text, and repeated sibling tags
collapse into a list. A tag that occurs once is never wrapped in a list.
"""

import codecs
import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, Optional, Union
from urllib.parse import unquote_plus

from .errors import BodyFormatError

logger = logging.getLogger(__name__)

# Key under which an XML element's character content is exposed
XML_TEXT_ELEMENT_NAME = 'value'


@dataclass
class DecodeResult:
    """Outcome of decoding a request body."""

    tree: Dict[str, Any]
    source: Optional[str] = None  # json, xml, form, query
    error: Optional[BodyFormatError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant: {name}")


def _local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an ElementTree tag or attribute."""
    if tag.startswith('{'):
        return tag.split('}', 1)[1]
    return tag


def parse_key_value_pairs(text: str) -> Dict[str, str]:
    """
    Parse ``a=1&b=2`` style text.

    Values are percent-decoded as UTF-8 with ``+`` meaning space. A key
    without ``=`` gets an empty string. Empty pairs are skipped and a
    repeated key keeps its last value.

    Example:
        >>> parse_key_value_pairs('EmptyKey=&NotEmptyKey=Not+Empty+Val')
        {'EmptyKey': '', 'NotEmptyKey': 'Not Empty Val'}
    """
    result = {}
    for pair in text.split('&'):
        if not pair:
            continue
        key, _, value = pair.partition('=')
        result[key] = unquote_plus(value, encoding='utf-8', errors='replace')
    return result


class BodyDecoder:
    """
    Decode request bodies into a request tree.

    Example:
        decoder = BodyDecoder()
        tree = decoder.decode(b'<root><var type="number">1111</var></root>', url)
        # {'var': {'type': 'number', 'value': '1111'}}

        result = decoder.parse(b'garbage', 'http://localhost/x')
        if not result.ok:
            print(result.error)
    """

    def __init__(self, text_element_name: str = XML_TEXT_ELEMENT_NAME):
        self.text_element_name = text_element_name
        self._json_decoder = json.JSONDecoder(
            parse_float=Decimal,
            parse_constant=_reject_constant
        )

    def decode(self, body: Union[bytes, str, None], url: str = '') -> Dict[str, Any]:
        """Decode a body into a tree. Never raises; unknown formats give {}."""
        return self.parse(body, url).tree

    def parse(self, body: Union[bytes, str, None], url: str = '') -> DecodeResult:
        """
        Decode a body and report which format matched.

        Args:
            body: Raw request body
            url: Absolute request URL, used for the query string fallback

        Returns:
            DecodeResult; ``error`` is set when no format matched
        """
        if body is None:
            raw = b''
        elif isinstance(body, str):
            raw = body.encode('utf-8')
        else:
            raw = body
        if raw.startswith(codecs.BOM_UTF8):
            raw = raw[len(codecs.BOM_UTF8):]
        text = raw.decode('utf-8', errors='replace')

        tree = self._parse_json(text)
        if tree is not None:
            return DecodeResult(tree=tree, source='json')

        tree = self._parse_xml(raw)
        if tree is not None:
            return DecodeResult(tree=tree, source='xml')

        if text and ('&' in text or '=' in text):
            return DecodeResult(tree=parse_key_value_pairs(text), source='form')

        query = self._query_string(url or '')
        if query:
            return DecodeResult(tree=parse_key_value_pairs(query), source='query')

        error = BodyFormatError(
            "The body doesn't match any of the supported formats (JSON, XML, key=value) "
            "and the URL has no query string"
        )
        logger.warning(f"Body parse error: {error}")
        return DecodeResult(tree={}, error=error)

    def _parse_json(self, text: str) -> Optional[Dict[str, Any]]:
        try:
            # Content after the first complete value is ignored
            value, _ = self._json_decoder.raw_decode(text.lstrip())
        except ValueError as e:
            logger.debug(f"Body is not JSON: {e}")
            return None

        if not isinstance(value, dict):
            logger.debug(f"JSON body is a {type(value).__name__}, not an object")
            return None
        return value

    def _parse_xml(self, raw: bytes) -> Optional[Dict[str, Any]]:
        if not raw.strip():
            return None

        try:
            root = ET.fromstring(raw)
        except (ET.ParseError, ValueError) as e:
            logger.debug(f"Body is not XML: {e}")
            return None

        node = self._element_to_node(root)
        if isinstance(node, dict):
            return node
        # A document element holding only text
        return {self.text_element_name: node}

    def _element_to_node(self, element: ET.Element) -> Any:
        children = list(element)
        attributes = element.attrib
        text = element.text or ''

        if not children and not attributes:
            return text

        node: Dict[str, Any] = {}
        repeated = set()

        for name, value in attributes.items():
            self._add_member(node, repeated, _local_name(name), value)

        for child in children:
            self._add_member(node, repeated, _local_name(child.tag), self._element_to_node(child))

        if children:
            # Mixed content: whitespace between child elements is layout, not data
            parts = [text] + [child.tail or '' for child in children]
            content = ''.join(part.strip() for part in parts)
            if content:
                node[self.text_element_name] = content
        elif text:
            node[self.text_element_name] = text

        return node

    @staticmethod
    def _add_member(node: Dict[str, Any], repeated: set, key: str, value: Any):
        if key not in node:
            node[key] = value
        elif key in repeated:
            node[key].append(value)
        else:
            node[key] = [node[key], value]
            repeated.add(key)

    @staticmethod
    def _query_string(url: str) -> str:
        _, sep, query = url.partition('?')
        if not sep:
            return ''
        return query.split('#', 1)[0]
