"""Extended URL-encoded form parsing.

Turns bracket notation into nested containers:

    a=1&a=2              -> {"a": ["1", "2"]}
    user[name]=ann       -> {"user": {"name": "ann"}}
    tags[]=x&tags[]=y    -> {"tags": ["x", "y"]}
    rows[1]=b&rows[0]=a  -> {"rows": ["a", "b"]}

Brackets nested deeper than `depth` are kept as one literal key segment.
Numeric indices above ARRAY_LIMIT produce a mapping instead of a list.
"""

import re
from typing import Any
from urllib.parse import parse_qsl

DEFAULT_DEPTH = 5
DEFAULT_PARAMETER_LIMIT = 1000
ARRAY_LIMIT = 20

_ROOT_PATTERN = re.compile(r"^[^\[]*")
_CHILD_PATTERN = re.compile(r"\[([^\[\]]*)\]")


class ParameterLimitError(ValueError):
    """Raised when a form body carries more than the allowed number of fields."""


def split_key(key: str, depth: int = DEFAULT_DEPTH) -> list[str]:
    """Split `a[b][c]` into ["a", "b", "c"], honouring the depth limit."""
    root = _ROOT_PATTERN.match(key).group(0)
    rest = key[len(root) :]
    segments = [root] if root else []

    pos = 0
    children = 0
    while pos < len(rest) and children < depth:
        match = _CHILD_PATTERN.match(rest, pos)
        if match is None:
            break
        segments.append(match.group(1))
        pos = match.end()
        children += 1

    if children == 0 and rest:
        return [key]
    if pos < len(rest):
        segments.append(rest[pos:])

    return segments or [key]


def _is_index(key: str) -> bool:
    return key.isascii() and key.isdigit()


def _next_index(node: dict) -> str:
    indices = [int(k) for k in node if _is_index(k)]
    return str(max(indices) + 1) if indices else "0"


def _merge_leaf(node: dict, key: str, value: str) -> None:
    existing = node.get(key)
    if existing is None:
        node[key] = value
    elif isinstance(existing, list):
        existing.append(value)
    elif isinstance(existing, dict):
        existing[_next_index(existing)] = value
    else:
        node[key] = [existing, value]


def _descend(node: dict, key: str) -> dict:
    child = node.get(key)
    if isinstance(child, dict):
        return child
    if child is None:
        child = {}
    elif isinstance(child, list):
        child = {str(i): v for i, v in enumerate(child)}
    else:
        child = {"0": child}
    node[key] = child
    return child


def _compact(value: Any) -> Any:
    """Convert dicts keyed only by small indices into ordered lists."""
    if isinstance(value, list):
        return [_compact(v) for v in value]
    if not isinstance(value, dict):
        return value

    compacted = {k: _compact(v) for k, v in value.items()}
    if compacted and all(_is_index(k) and int(k) <= ARRAY_LIMIT for k in compacted):
        return [compacted[k] for k in sorted(compacted, key=int)]
    return compacted


def parse_nested(
    body: str,
    depth: int = DEFAULT_DEPTH,
    parameter_limit: int = DEFAULT_PARAMETER_LIMIT,
) -> dict[str, Any]:
    """Parse an application/x-www-form-urlencoded body with bracket nesting.

    Args:
        body: The decoded request body.
        depth: Maximum number of bracket segments honoured per key.
        parameter_limit: Maximum number of fields.

    Returns:
        Nested dict of strings, lists and dicts. Empty body yields {}.

    Raises:
        ParameterLimitError: If the body has more than parameter_limit fields.
    """
    if not body:
        return {}

    if body.count("&") + 1 > parameter_limit:
        raise ParameterLimitError(f"too many parameters (limit {parameter_limit})")

    result: dict[str, Any] = {}
    for key, value in parse_qsl(body, keep_blank_values=True):
        segments = split_key(key, depth)
        if not segments[0]:
            continue
        node = result
        for i, segment in enumerate(segments):
            last = i == len(segments) - 1
            if segment == "" and node is not result:
                segment = _next_index(node)
            if last:
                _merge_leaf(node, segment, value)
            else:
                node = _descend(node, segment)

    return {k: _compact(v) for k, v in result.items()}
