"""
Bracket-notation query strings.

The content API takes nested parameters the way `qs` encodes them:

    filters[slug][$eq]=lucky-spin&populate[]=logo&pagination[page]=2

`stringify` builds such strings on the site side, `parse` turns the decoded
pairs back into nested dicts and lists on the API side.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Tuple
from urllib.parse import quote

_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


class QueryError(ValueError):
    """Malformed query parameters (surfaced as 400 by the API)."""


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _flatten(prefix: str, value: Any, pairs: List[Tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, dict):
        for key, item in value.items():
            _flatten(f"{prefix}[{key}]", item, pairs)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            if isinstance(item, (dict, list, tuple)):
                _flatten(f"{prefix}[{index}]", item, pairs)
            else:
                _flatten(f"{prefix}[]", item, pairs)
    else:
        pairs.append((prefix, _scalar(value)))


def stringify(params: Dict[str, Any]) -> str:
    """Encode nested params; keys stay readable, values are percent-encoded."""
    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        _flatten(str(key), value, pairs)
    return "&".join(f"{key}={quote(value, safe='')}" for key, value in pairs)


def split_key(key: str) -> List[str]:
    head, bracket, rest = key.partition("[")
    if not bracket:
        return [key]
    segments = _SEGMENT.findall(bracket + rest)
    return [head] + segments


def _is_index_map(node: Any) -> bool:
    return isinstance(node, dict) and bool(node) and all(k.isdigit() for k in node)


def _finalize(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    items = {key: _finalize(value) for key, value in node.items()}
    if _is_index_map(items):
        return [items[key] for key in sorted(items, key=int)]
    return items


def parse(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """Nest decoded (key, value) pairs. `a[]` and `a[0]` both become lists."""
    root: Dict[str, Any] = {}
    for key, value in items:
        segments = split_key(key)
        node = root
        for position, segment in enumerate(segments):
            if segment == "":
                segment = str(len(node))
            if position == len(segments) - 1:
                if segment not in node:
                    node[segment] = value
                elif _is_index_map(node[segment]):
                    node[segment][str(len(node[segment]))] = value
                elif isinstance(node[segment], dict):
                    raise QueryError(f"Conflicting query parameter: {key}")
                else:
                    # repeated plain key, e.g. populate=a&populate=b
                    node[segment] = {"0": node[segment], "1": value}
            else:
                child = node.setdefault(segment, {})
                if not isinstance(child, dict):
                    raise QueryError(f"Conflicting query parameter: {key}")
                node = child
    return _finalize(root)
