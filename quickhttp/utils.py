"""
Dotted-path helpers for tree-shaped request data.

Every function here works on plain mappings and sequences (the shape of an
input bag) and has no hidden state. Paths are either a ``.``-separated
string (``"user.address.city"``) or an explicit list of segments.
"""

from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any, Iterable, List, Optional, Union
from urllib.parse import urlencode

Path = Union[str, int, List[Union[str, int]], None]

MISSING = object()


def _segments(key: Path) -> List[Union[str, int]]:
    if isinstance(key, (list, tuple)):
        return list(key)
    if isinstance(key, int):
        return [key]
    return key.split(".")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def flatten_keys(keys: Iterable[Any]) -> List[Any]:
    """Accept both ``has("a", "b")`` and ``has(["a", "b"])`` argument styles."""
    flat: List[Any] = []
    for key in keys:
        if isinstance(key, (list, tuple, set, frozenset)):
            flat.extend(key)
        else:
            flat.append(key)
    return flat


def _step(target: Any, segment: Union[str, int]) -> Any:
    """Take a single step into ``target``, returning MISSING when it can't."""
    if isinstance(target, Mapping):
        if segment in target:
            return target[segment]
        if isinstance(segment, str) and segment.isdigit() and int(segment) in target:
            return target[int(segment)]
        return MISSING
    if _is_sequence(target):
        try:
            index = int(segment)
        except (TypeError, ValueError):
            return MISSING
        if 0 <= index < len(target):
            return target[index]
    return MISSING


def data_get(target: Any, key: Path, default: Any = None) -> Any:
    """
    Fetch a nested value from ``target`` using dotted-path notation.

    ``None`` as the key returns ``target`` itself. A literal key containing
    dots wins over traversal. A ``*`` segment collects the remainder of the
    path from every child of the current node.
    """
    if key is None:
        return target

    if isinstance(key, str) and isinstance(target, Mapping) and key in target:
        return target[key]

    segments = _segments(key)
    for position, segment in enumerate(segments):
        if segment == "*":
            if isinstance(target, Mapping):
                children = list(target.values())
            elif _is_sequence(target):
                children = list(target)
            else:
                return default
            rest = segments[position + 1:]
            if not rest:
                return children
            results = [data_get(child, rest, MISSING) for child in children]
            return [item for item in results if item is not MISSING]

        target = _step(target, segment)
        if target is MISSING:
            return default

    return target


def data_has(target: Any, key: Path) -> bool:
    """Return True when ``key`` resolves to a node, even one holding None."""
    if key is None or key == "":
        return False
    return data_get(target, key, MISSING) is not MISSING


def data_has_any(target: Any, keys) -> bool:
    """Return True when at least one of ``keys`` resolves."""
    return any(data_has(target, key) for key in keys)


def data_set(target: MutableMapping, key: Path, value: Any) -> MutableMapping:
    """
    Set ``value`` at ``key`` inside ``target``, creating intermediate
    mappings as needed. Non-mapping intermediates are overwritten.
    """
    if key is None:
        return target

    segments = _segments(key)
    node = target
    for segment in segments[:-1]:
        child = node.get(segment) if isinstance(node, Mapping) else None
        if not isinstance(child, MutableMapping):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = value
    return target


def data_forget(target: MutableMapping, keys) -> None:
    """Remove each dotted path in ``keys`` from ``target`` in place."""
    if isinstance(keys, (str, int)):
        keys = [keys]

    for key in keys:
        if isinstance(key, str) and key in target:
            del target[key]
            continue

        segments = _segments(key)
        node: Optional[Any] = target
        for segment in segments[:-1]:
            node = _step(node, segment)
            if node is MISSING or not isinstance(node, MutableMapping):
                node = None
                break
        if node is not None and segments[-1] in node:
            del node[segments[-1]]


def replace_recursive(base: Mapping, override: Mapping) -> dict:
    """
    Merge ``override`` into a copy of ``base``.

    Nested mappings are merged key by key; any other value in ``override``
    replaces the one in ``base``. Leaf values are not copied.
    """
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = replace_recursive(current, value)
        else:
            result[key] = value
    return result


def build_query(data: Mapping[str, Any]) -> str:
    """
    Encode a nested mapping as a query string using bracket notation,
    e.g. ``{"user": {"name": "x"}, "tags": ["a"]}`` ->
    ``user%5Bname%5D=x&tags%5B%5D=a``.
    """
    pairs: List[Any] = []

    def walk(prefix: str, value: Any) -> None:
        if isinstance(value, Mapping):
            for child_key, child in value.items():
                walk(f"{prefix}[{child_key}]" if prefix else str(child_key), child)
        elif _is_sequence(value):
            for index, child in enumerate(value):
                walk(f"{prefix}[]", child)
        elif value is not None:
            if isinstance(value, bool):
                value = int(value)
            pairs.append((prefix, value))

    walk("", data)
    return urlencode(pairs)
