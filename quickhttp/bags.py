"""
Input bags: copy-on-write mappings backing one request data source.
"""

import copy
import re
from typing import Any, Dict, Iterator, List, Mapping, Optional

from werkzeug.datastructures import Headers, MultiDict

_BRACKETED = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_PART = re.compile(r"\[([^\[\]]*)\]")


def _key_segments(key: str):
    """Split ``user[address][city]`` into ``["user", "address", "city"]``."""
    match = _BRACKETED.match(key)
    if not match:
        return [key]
    segments = [match.group(1)] + _BRACKET_PART.findall(match.group(2))
    # Only a trailing "[]" is meaningful; anything else is kept verbatim.
    if "" in segments[1:-1]:
        return [key]
    return segments


def expand_multidict(data: MultiDict) -> Dict[str, Any]:
    """
    Turn a Werkzeug multi-dict into a nested input tree.

    Bracket notation builds nested mappings and ``name[]`` builds lists.
    A plain key sent more than once becomes a list of its values.
    """
    tree: Dict[str, Any] = {}
    for key, values in data.lists():
        segments = _key_segments(key)
        append = segments[-1] == ""
        if append:
            segments = segments[:-1]

        node = tree
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child

        leaf = segments[-1]
        if append:
            existing = node.get(leaf)
            node[leaf] = (existing if isinstance(existing, list) else []) + list(values)
        elif len(values) == 1:
            node[leaf] = values[0]
        else:
            node[leaf] = list(values)
    return tree


class InputBag:
    """
    An ordered key -> value mapping for one request data source.

    The bag owns a private copy of its data; :meth:`all` hands out copies
    so callers never alias each other's input.
    """

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None):
        self._parameters: Dict[str, Any] = copy.deepcopy(dict(parameters or {}))

    @classmethod
    def from_multidict(cls, data: MultiDict) -> "InputBag":
        return cls(expand_multidict(data))

    def all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._parameters)

    def keys(self):
        return list(self._parameters)

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._parameters.get(key, default))

    def set(self, key: str, value: Any) -> None:
        self._parameters[key] = copy.deepcopy(value)

    def has(self, key: str) -> bool:
        return key in self._parameters

    def remove(self, key: str) -> None:
        self._parameters.pop(key, None)

    def replace(self, parameters: Mapping[str, Any]) -> None:
        """Swap the whole contents of the bag."""
        self._parameters = copy.deepcopy(dict(parameters))

    def add(self, parameters: Mapping[str, Any]) -> None:
        """Merge ``parameters`` in; incoming values win."""
        self._parameters.update(copy.deepcopy(dict(parameters)))

    def __contains__(self, key: object) -> bool:
        return key in self._parameters

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._parameters))

    def __len__(self) -> int:
        return len(self._parameters)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, InputBag):
            return self._parameters == other._parameters
        return NotImplemented

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._parameters!r})"


class ServerBag:
    """Read-only view over the WSGI environ (server variables)."""

    def __init__(self, environ: Mapping[str, Any]):
        self._environ = environ

    def all(self) -> Dict[str, Any]:
        return dict(self._environ)

    def get(self, key: str, default: Any = None) -> Any:
        return self._environ.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._environ


class HeaderBag:
    """
    Read-only view over a Werkzeug header collection.

    Names are matched case-insensitively, and ``CONTENT_TYPE`` style names
    are accepted for ``Content-Type``.
    """

    def __init__(self, headers: Headers):
        self._headers = headers

    @staticmethod
    def normalize(key: str) -> str:
        return key.replace("_", "-").lower()

    def all(self) -> Dict[str, List[str]]:
        result: Dict[str, List[str]] = {}
        for name, value in self._headers.items():
            result.setdefault(name.lower(), []).append(value)
        return result

    def get(self, key: str, default: Any = None) -> Any:
        return self._headers.get(self.normalize(key), default)

    def get_list(self, key: str) -> List[str]:
        return self._headers.getlist(self.normalize(key))

    def has(self, key: str) -> bool:
        return self.normalize(key) in self._headers
