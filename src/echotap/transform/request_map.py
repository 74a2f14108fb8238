"""
echotap Request Map Builder

Produces the request context both transformers render against: the decoded
body, overridden by named capture groups of the stub's ``urlRegex``
parameter.
"""

import logging
import re
from typing import Any, Dict, Optional, Pattern

from .decoder import BodyDecoder
from .errors import CapturePatternError
from .models import IncomingRequest

logger = logging.getLogger(__name__)

URL_REGEX_PARAMETER_NAME = 'urlRegex'

# (?<name>...) named groups; lookbehinds are left alone
_JAVA_NAMED_GROUP = re.compile(r'\(\?<(?![=!])')


def compile_url_pattern(pattern: str) -> Pattern:
    """
    Compile a urlRegex, accepting both ``(?<name>...)`` and ``(?P<name>...)``.

    Raises:
        CapturePatternError: The pattern is not a valid regular expression
    """
    try:
        return re.compile(_JAVA_NAMED_GROUP.sub('(?P<', pattern))
    except re.error as e:
        raise CapturePatternError(f"Invalid urlRegex '{pattern}': {e}", pattern=pattern) from e


def extract_url_captures(pattern: str, url: str) -> Dict[str, str]:
    """
    Named groups of ``pattern`` matched against the whole of ``url``.

    Returns {} when the URL does not match; groups that took no part in the
    match are left out.

    Example:
        >>> extract_url_captures('/param/(?<var>.*?)', '/param/10')
        {'var': '10'}
    """
    match = compile_url_pattern(pattern).fullmatch(url)
    if not match:
        logger.debug(f"urlRegex '{pattern}' does not match {url}")
        return {}
    return {name: value for name, value in match.groupdict().items() if value is not None}


class RequestMapBuilder:
    """
    Build the request context for a transformer.

    Example:
        builder = RequestMapBuilder()
        request_map = builder.build(request, {'urlRegex': '/param/(?<var>.*?)'})
    """

    def __init__(self, decoder: Optional[BodyDecoder] = None):
        self.decoder = decoder or BodyDecoder()

    def build(self, request: IncomingRequest, parameters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        request_map = self.decoder.decode(request.body, request.absolute_url)
        return self.apply_url_captures(request_map, request.url, parameters)

    @staticmethod
    def apply_url_captures(
        request_map: Dict[str, Any],
        url: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Overwrite same-named keys with the urlRegex capture groups."""
        url_regex = (parameters or {}).get(URL_REGEX_PARAMETER_NAME)
        if url_regex:
            request_map.update(extract_url_captures(url_regex, url))
        return request_map
