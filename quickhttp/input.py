"""
Input resolution for requests.

:class:`InputResolver` decides which data bag backs generic ``input()``
lookups and layers presence tests and typed accessors on top. It is
composed into :class:`~quickhttp.request.Request` and
:class:`~quickhttp.response.Response`, which forward to it.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

from dateutil import parser as date_parser
from dateutil import tz as date_tz

from quickhttp.exceptions import DateParseError, InvalidArgument
from quickhttp.utils import (
    MISSING,
    data_forget,
    data_get,
    data_has,
    data_has_any,
    data_set,
    flatten_keys,
    replace_recursive,
)

logger = logging.getLogger(__name__)

TRUE_STRINGS = frozenset({"1", "true", "on", "yes"})
FALSE_STRINGS = frozenset({"0", "false", "off", "no", ""})

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


class InputResolver:
    """
    Input accessors for a host object.

    The host supplies the data sources: ``method``, ``is_json``,
    ``query_bag``, ``form_bag``, ``json_bag``, ``cookie_bag``,
    ``server_bag``, ``header_bag``, ``all_files()`` and ``config``.
    Conditional helpers such as :meth:`when_has` return the host so calls
    chain the way they would on the host itself.
    """

    def __init__(self, host: Any):
        self._host = host

    # ── Source selection ────────────────────────────────────────────

    def get_input_source(self):
        """
        Return the bag that backs ``input()``.

        JSON requests read their decoded body. Otherwise GET and HEAD read
        the query string and every other method reads the form body. With
        ``json_overrides_method`` disabled, GET and HEAD always read the
        query string.
        """
        host = self._host
        safe_method = host.method in ("GET", "HEAD")
        if host.is_json and (host.config.get("json_overrides_method") or not safe_method):
            return host.json_bag
        if safe_method:
            return host.query_bag
        return host.form_bag

    def _retrieve_item(self, bag, key: Optional[str], default: Any) -> Any:
        if key is None:
            return bag.all()
        return bag.get(key, default)

    def query(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._retrieve_item(self._host.query_bag, key, default)

    def post(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._retrieve_item(self._host.form_bag, key, default)

    def cookie(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._retrieve_item(self._host.cookie_bag, key, default)

    def has_cookie(self, key: str) -> bool:
        return self.cookie(key) is not None

    def server(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._retrieve_item(self._host.server_bag, key, default)

    def header(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._retrieve_item(self._host.header_bag, key, default)

    # ── Input retrieval ─────────────────────────────────────────────

    def input(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Look up ``key`` (dotted path) in the selected source plus the query string."""
        merged = self._host.query_bag.all()
        merged.update(self.get_input_source().all())
        return data_get(merged, key, default)

    def get(self, key: str, default: Any = None) -> Any:
        return self.input(key, default)

    def all(self, keys=None) -> Dict[str, Any]:
        """
        Return every input value merged with the uploaded files.

        With ``keys``, only those dotted paths are returned, nested the same
        way in the result. Keys that are absent are left out.
        """
        data = replace_recursive(self.input(), self._host.all_files())
        if not keys:
            return data

        if isinstance(keys, str):
            keys = [keys]
        results: Dict[str, Any] = {}
        for key in keys:
            value = data_get(data, key, MISSING)
            if value is not MISSING:
                data_set(results, key, value)
        return results

    def keys(self) -> List[str]:
        return list(self.all())

    def only(self, *keys) -> Dict[str, Any]:
        data = self.all()
        results: Dict[str, Any] = {}
        for key in flatten_keys(keys):
            value = data_get(data, key, MISSING)
            if value is not MISSING:
                data_set(results, key, value)
        return results

    def except_(self, *keys) -> Dict[str, Any]:
        results = self.all()
        data_forget(results, flatten_keys(keys))
        return results

    # ── Presence ────────────────────────────────────────────────────

    def has(self, *keys) -> bool:
        data = self.all()
        return all(data_has(data, key) for key in flatten_keys(keys))

    def exists(self, key: str) -> bool:
        return self.has(key)

    def has_any(self, *keys) -> bool:
        data = self.all()
        return data_has_any(data, flatten_keys(keys))

    def missing(self, *keys) -> bool:
        return not self.has(*keys)

    def _is_empty_string(self, key: str) -> bool:
        value = self.input(key)
        if isinstance(value, (bool, list, tuple, dict)):
            return False
        return str(value if value is not None else "").strip() == ""

    def filled(self, *keys) -> bool:
        return all(not self._is_empty_string(key) for key in flatten_keys(keys))

    def any_filled(self, *keys) -> bool:
        return any(not self._is_empty_string(key) for key in flatten_keys(keys))

    def is_not_filled(self, *keys) -> bool:
        return all(self._is_empty_string(key) for key in flatten_keys(keys))

    def _when(self, condition: bool, key: str, callback: Callable, default: Optional[Callable]):
        if condition:
            return callback(data_get(self.all(), key)) or self._host
        if default is not None:
            return default()
        return self._host

    def when_has(self, key: str, callback: Callable, default: Optional[Callable] = None):
        return self._when(self.has(key), key, callback, default)

    def when_filled(self, key: str, callback: Callable, default: Optional[Callable] = None):
        return self._when(self.filled(key), key, callback, default)

    def when_missing(self, key: str, callback: Callable, default: Optional[Callable] = None):
        return self._when(self.missing(key), key, callback, default)

    # ── Typed accessors ─────────────────────────────────────────────

    def string(self, key: str, default: Any = None) -> str:
        value = self.input(key, default)
        return "" if value is None else str(value)

    def boolean(self, key: str, default: Any = False) -> bool:
        """
        Read ``key`` as a boolean.

        ``1/true/on/yes`` and ``0/false/off/no`` (any case) plus the empty
        string are understood. Lists and mappings are False. Any other value
        raises InvalidArgument.
        """
        value = self.input(key, default)
        if isinstance(value, bool):
            return value
        if value is None or isinstance(value, (list, tuple, dict)):
            return False
        normalized = str(value).strip().lower()
        if normalized in TRUE_STRINGS:
            return True
        if normalized in FALSE_STRINGS:
            return False
        raise InvalidArgument(f"Input {key!r} value {value!r} is not a boolean")

    def integer(self, key: str, default: Any = 0) -> int:
        value = self.input(key, default)
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        if isinstance(value, (bool, int, float)):
            return int(value)
        if isinstance(value, (list, tuple, dict)):
            return 1 if value else 0
        match = _LEADING_INT.match(str(value if value is not None else ""))
        if not match:
            return 0
        try:
            return int(match.group(1))
        except ValueError:
            # past the interpreter's digit limit for str to int
            return 0

    def float(self, key: str, default: Any = 0.0) -> float:
        value = self.input(key, default)
        if isinstance(value, (bool, int, float)):
            try:
                return float(value)
            except OverflowError:
                return math.inf if value > 0 else -math.inf
        if isinstance(value, (list, tuple, dict)):
            return 1.0 if value else 0.0
        match = _LEADING_FLOAT.match(str(value if value is not None else ""))
        return float(match.group(1)) if match else 0.0

    def date(self, key: str, format: Optional[str] = None, tz: Optional[str] = None) -> Optional[datetime]:
        """
        Parse ``key`` as a datetime.

        With ``format`` the value must match it exactly (``strptime``
        syntax); without, anything ``dateutil`` understands is accepted.
        ``tz`` names a zone that is attached to naive results and that
        aware results are converted to.
        """
        if self.is_not_filled(key):
            return None

        value = self.input(key)
        try:
            if format is None:
                parsed = date_parser.parse(str(value))
            else:
                parsed = datetime.strptime(str(value), format)
        except (ValueError, OverflowError) as exc:
            raise DateParseError(key, value, format) from exc

        if tz is not None:
            zone = date_tz.gettz(tz)
            if zone is None:
                raise InvalidArgument(f"Unknown timezone {tz!r}")
            parsed = parsed.replace(tzinfo=zone) if parsed.tzinfo is None else parsed.astimezone(zone)
        return parsed

    def enum(self, key: str, enum_class: Type[Enum]) -> Optional[Enum]:
        if self.is_not_filled(key):
            return None
        if not (isinstance(enum_class, type) and issubclass(enum_class, Enum)):
            return None
        try:
            return enum_class(self.input(key))
        except ValueError:
            logger.debug("Input %r is not a valid %s", key, enum_class.__name__)
            return None
