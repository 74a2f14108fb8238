"""
echotap Placeholder Interpolator

Fills ``$(path)`` placeholders in a response template from the request tree.

Example:
    interpolator = PlaceholderInterpolator()
    interpolator.render('{"var":$(var), "n":$(!RandomInteger)}', {'var': 1111})
    # '{"var":1111, "n":1804289383}'
"""

import random
import re
from typing import Any, Dict, Optional

from .paths import PathResolver

INTERPOLATION_PATTERN = re.compile(r'\$\(.*?\)')
RANDOM_INTEGER_SENTINEL = '!RandomInteger'
RANDOM_INTEGER_BOUND = 2 ** 31 - 1


class PlaceholderInterpolator:
    """
    Replace ``$(...)`` tokens in a single left-to-right pass.

    Substitution is plain text: the template author decides whether a value
    lands in a quoted or a bare position. Substituted text is never rescanned.
    """

    def __init__(
        self,
        resolver: Optional[PathResolver] = None,
        rng: Optional[random.Random] = None
    ):
        self.resolver = resolver or PathResolver()
        self.rng = rng or random.Random()

    def render(self, template: str, context: Dict[str, Any]) -> str:
        """
        Render a template against a request context.

        Raises:
            PathError: A placeholder indexes into something that is not a
                list, or past the end of one
        """
        return INTERPOLATION_PATTERN.sub(lambda match: self._value_for(match.group(), context), template)

    def _value_for(self, token: str, context: Dict[str, Any]) -> str:
        inner = token[2:-1]
        if inner == RANDOM_INTEGER_SENTINEL:
            return str(self.rng.randrange(RANDOM_INTEGER_BOUND))
        return self.resolver.resolve_text(context, inner)
