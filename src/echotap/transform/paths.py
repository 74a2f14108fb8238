"""
echotap Path Resolver

Resolves dotted, array-indexed field paths such as
``item.numbers[1].values[0].value`` against a request tree.

A missing key is not an error: it resolves to None, which renders as
``null``. A scalar node also answers to ``value``, so text-only XML
elements read the same as elements carrying attributes. Indexing something
that is not a list, or indexing past the end of a list, raises a PathError
so the host can answer with a server error.
"""

import json
import re
from decimal import Decimal
from typing import Any, List, Tuple

from .decoder import XML_TEXT_ELEMENT_NAME
from .errors import NotAListError, IndexOutOfBoundsError

_SEGMENT_PATTERN = re.compile(r'^(?P<name>[^\[\]]*)(?P<indices>(?:\[-?\d+\])+)$')
_INDEX_PATTERN = re.compile(r'\[(-?\d+)\]')


def parse_path(path: str) -> List[Tuple[str, List[int]]]:
    """
    Split a path into ``(key, [indices])`` segments.

    Example:
        >>> parse_path('item.numbers[1].value')
        [('item', []), ('numbers', [1]), ('value', [])]
    """
    segments = []
    for segment in path.split('.'):
        match = _SEGMENT_PATTERN.match(segment)
        if match:
            indices = [int(i) for i in _INDEX_PATTERN.findall(match.group('indices'))]
            segments.append((match.group('name'), indices))
        else:
            segments.append((segment, []))
    return segments


def resolve(tree: Any, path: str) -> Any:
    """
    Resolve a path against a tree and return the raw node.

    Args:
        tree: Request tree (normally a dict)
        path: Dotted path, e.g. ``numbers[0]`` or ``var.type``

    Returns:
        The addressed node, or None when a key is missing

    Raises:
        NotAListError: An indexed segment is not a list
        IndexOutOfBoundsError: An index is outside ``[0, len)``
    """
    current = tree
    for name, indices in parse_path(path):
        if isinstance(current, dict):
            current = current.get(name)
        elif isinstance(current, list) or name != XML_TEXT_ELEMENT_NAME:
            current = None
        # Otherwise a scalar, such as text-only XML, is its own text key

        label = name
        for index in indices:
            label = f"{label}[{index}]"
            if not isinstance(current, list):
                raise NotAListError(
                    f"'{label}' in path '{path}' is not a list",
                    path=path,
                    segment=label
                )
            if not 0 <= index < len(current):
                raise IndexOutOfBoundsError(
                    f"Index {index} is out of bounds for '{label}' (size {len(current)}) in path '{path}'",
                    path=path,
                    segment=label,
                    index=index,
                    size=len(current)
                )
            current = current[index]
    return current


def resolve_text(tree: Any, path: str) -> str:
    """Resolve a path and stringify the result."""
    return stringify(resolve(tree, path))


def stringify(value: Any) -> str:
    """
    Render a tree node as text.

    Strings are returned as-is, numbers keep their literal digits, None is
    ``null`` and containers use JSON syntax with ``", "`` separators so a
    whole array or object can be dropped into a template.

    Example:
        >>> stringify([0, 1, 2])
        '[0, 1, 2]'
    """
    if isinstance(value, str):
        return value
    return _encode(value)


def _encode(value: Any) -> str:
    if value is None:
        return 'null'
    if value is True:
        return 'true'
    if value is False:
        return 'false'
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, dict):
        members = ', '.join(f"{json.dumps(str(k), ensure_ascii=False)}: {_encode(v)}" for k, v in value.items())
        return '{' + members + '}'
    if isinstance(value, (list, tuple)):
        return '[' + ', '.join(_encode(v) for v in value) + ']'
    return json.dumps(str(value), ensure_ascii=False)


class PathResolver:
    """
    Object wrapper over :func:`resolve` for callers that inject resolvers.

    Example:
        resolver = PathResolver()
        resolver.resolve_text({'numbers': [3, 2, 1]}, 'numbers[2]')  # '1'
    """

    def resolve(self, tree: Any, path: str) -> Any:
        return resolve(tree, path)

    def resolve_text(self, tree: Any, path: str) -> str:
        return resolve_text(tree, path)
