"""
Request handling for quickhttp.

:class:`Request` is a Werkzeug request with input and content-negotiation
helpers. The helpers live in :class:`~quickhttp.input.InputResolver` and
:class:`~quickhttp.negotiation.ContentNegotiator`; the request holds one
of each and forwards to them.
"""

from __future__ import annotations

import ipaddress
import json
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

from werkzeug.datastructures import MultiDict
from werkzeug.urls import iri_to_uri
from werkzeug.utils import cached_property
from werkzeug.wrappers import Request as BaseRequest

from quickhttp.bags import HeaderBag, InputBag, ServerBag, expand_multidict
from quickhttp.config import HttpConfig, default_config
from quickhttp.files import UploadedFile
from quickhttp.input import InputResolver
from quickhttp.negotiation import ContentNegotiator
from quickhttp.utils import build_query, data_forget, data_get, flatten_keys

logger = logging.getLogger(__name__)


class Request(BaseRequest):
    """
    Represents an incoming HTTP request.

    Everything Werkzeug offers is still available; the additions are
    method-style accessors such as ``request.input("user.name")``,
    ``request.boolean("remember")`` or ``request.prefers("json", "html")``.
    """

    def __init__(self, environ, populate_request: bool = True, shallow: bool = False,
                 config: Optional[HttpConfig] = None):
        super().__init__(environ, populate_request=populate_request, shallow=shallow)
        self.config = config or default_config
        self._input = InputResolver(self)
        self._negotiator = ContentNegotiator(self)
        self._json_lock = threading.Lock()
        self._json_bag: Optional[InputBag] = None

    # ── Data sources ────────────────────────────────────────────────

    @cached_property
    def query_bag(self) -> InputBag:
        return InputBag.from_multidict(self.args)

    @cached_property
    def form_bag(self) -> InputBag:
        return InputBag.from_multidict(self.form)

    @cached_property
    def cookie_bag(self) -> InputBag:
        return InputBag(self.cookies.to_dict())

    @cached_property
    def server_bag(self) -> ServerBag:
        return ServerBag(self.environ)

    @cached_property
    def header_bag(self) -> HeaderBag:
        return HeaderBag(self.headers)

    @property
    def json_bag(self) -> InputBag:
        """The decoded JSON body, parsed at most once per request."""
        with self._json_lock:
            if self._json_bag is None:
                self._json_bag = InputBag(self._decode_json_body())
            return self._json_bag

    def _decode_json_body(self) -> Dict[str, Any]:
        raw = self.get_data(cache=True)
        if not raw:
            return {}
        try:
            decoded = json.loads(raw)
        except ValueError as exc:
            logger.debug("Ignoring malformed JSON body: %s", exc)
            return {}
        if not isinstance(decoded, dict):
            logger.debug("Ignoring JSON body of type %s", type(decoded).__name__)
            return {}
        return decoded

    def set_json(self, data: Union[str, bytes, Mapping[str, Any]]) -> "Request":
        """Replace the JSON bag, from a JSON document or a mapping."""
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        with self._json_lock:
            self._json_bag = InputBag(data)
        return self

    @cached_property
    def _uploads(self) -> MultiDict:
        uploads = MultiDict()
        for key, file in self.files.items(multi=True):
            if file.filename:
                uploads.add(key, UploadedFile.create_from_base(file, self.config))
        return uploads

    def all_files(self) -> Dict[str, Any]:
        """Uploaded files as a nested tree; empty upload fields are dropped."""
        return expand_multidict(self._uploads)

    def file(self, key: Optional[str] = None, default: Any = None) -> Any:
        return data_get(self.all_files(), key, default)

    def has_file(self, key: str) -> bool:
        found = self.file(key)
        if isinstance(found, list):
            return any(isinstance(item, UploadedFile) for item in found)
        return isinstance(found, UploadedFile)

    # ── Mutation ────────────────────────────────────────────────────

    def merge(self, data: Mapping[str, Any]) -> "Request":
        self.get_input_source().add(data)
        return self

    def replace(self, data: Mapping[str, Any]) -> "Request":
        self.get_input_source().replace(data)
        return self

    # ── Input ───────────────────────────────────────────────────────

    def get_input_source(self) -> InputBag:
        return self._input.get_input_source()

    def input(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._input.input(key, default)

    def get(self, key: str, default: Any = None) -> Any:
        return self._input.get(key, default)

    def all(self, keys=None) -> Dict[str, Any]:
        return self._input.all(keys)

    def keys(self) -> List[str]:
        return self._input.keys()

    def to_dict(self) -> Dict[str, Any]:
        return self._input.all()

    def only(self, *keys) -> Dict[str, Any]:
        return self._input.only(*keys)

    def except_(self, *keys) -> Dict[str, Any]:
        return self._input.except_(*keys)

    def query(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._input.query(key, default)

    def post(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._input.post(key, default)

    def cookie(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._input.cookie(key, default)

    def has_cookie(self, key: str) -> bool:
        return self._input.has_cookie(key)

    def server_var(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Server (WSGI environ) variables; ``request.server`` is Werkzeug's address tuple."""
        return self._input.server(key, default)

    def header(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._input.header(key, default)

    def has(self, *keys) -> bool:
        return self._input.has(*keys)

    def exists(self, key: str) -> bool:
        return self._input.exists(key)

    def has_any(self, *keys) -> bool:
        return self._input.has_any(*keys)

    def missing(self, *keys) -> bool:
        return self._input.missing(*keys)

    def filled(self, *keys) -> bool:
        return self._input.filled(*keys)

    def any_filled(self, *keys) -> bool:
        return self._input.any_filled(*keys)

    def is_not_filled(self, *keys) -> bool:
        return self._input.is_not_filled(*keys)

    def when_has(self, key, callback, default=None):
        return self._input.when_has(key, callback, default)

    def when_filled(self, key, callback, default=None):
        return self._input.when_filled(key, callback, default)

    def when_missing(self, key, callback, default=None):
        return self._input.when_missing(key, callback, default)

    def string(self, key: str, default: Any = None) -> str:
        return self._input.string(key, default)

    def boolean(self, key: str, default: Any = False) -> bool:
        return self._input.boolean(key, default)

    def integer(self, key: str, default: Any = 0) -> int:
        return self._input.integer(key, default)

    def float(self, key: str, default: Any = 0.0) -> float:
        return self._input.float(key, default)

    def date(self, key: str, format: Optional[str] = None, tz: Optional[str] = None):
        """Parse an input value as a datetime; overrides Werkzeug's ``Date`` header property."""
        return self._input.date(key, format, tz)

    def enum(self, key: str, enum_class):
        return self._input.enum(key, enum_class)

    # ── Content negotiation ─────────────────────────────────────────

    @property
    def is_json(self) -> bool:
        """True when the Content-Type mentions ``/json`` or ``+json``."""
        return self._negotiator.is_json()

    def ajax(self) -> bool:
        return self._negotiator.ajax()

    def pjax(self) -> bool:
        return self._negotiator.pjax()

    def prefetch(self) -> bool:
        return self._negotiator.prefetch()

    def acceptable_content_types(self) -> List[str]:
        return self._negotiator.acceptable_content_types()

    def accepts_any_content_type(self) -> bool:
        return self._negotiator.accepts_any_content_type()

    def wants_json(self) -> bool:
        return self._negotiator.wants_json()

    def expects_json(self) -> bool:
        return self._negotiator.expects_json()

    def accepts(self, *content_types) -> bool:
        return self._negotiator.accepts(*content_types)

    def accepts_json(self) -> bool:
        return self._negotiator.accepts_json()

    def accepts_html(self) -> bool:
        return self._negotiator.accepts_html()

    def prefers(self, *content_types) -> Optional[str]:
        return self._negotiator.prefers(*content_types)

    def format(self, default: Optional[str] = None) -> str:
        return self._negotiator.format(default)

    def get_format(self, mimetype: str) -> Optional[str]:
        return self._negotiator.get_format(mimetype)

    def get_mime_type(self, format: str) -> Optional[str]:
        return self._negotiator.get_mime_type(format)

    matches_type = staticmethod(ContentNegotiator.matches_type)

    # ── Credentials and client ──────────────────────────────────────

    def bearer_token(self) -> Optional[str]:
        """Return the token of an ``Authorization: Bearer <token>`` header."""
        header = self.header("Authorization") or ""
        position = header.find("Bearer ")
        if position == -1:
            return None
        return header[position + len("Bearer "):].split(",", 1)[0].strip()

    def ip(self):
        """The client address as an ``ipaddress`` object, or None."""
        if not self.remote_addr:
            return None
        try:
            return ipaddress.ip_address(self.remote_addr)
        except ValueError:
            logger.debug("Client address %r is not an IP address", self.remote_addr)
            return None

    def ips(self) -> list:
        """Every address in the forwarding chain that parses as an IP."""
        addresses = []
        for candidate in self.access_route:
            try:
                addresses.append(ipaddress.ip_address(candidate.strip()))
            except ValueError:
                logger.debug("Skipping forwarded address %r", candidate)
        return addresses

    def secure(self) -> bool:
        return self.is_secure

    def user_agent_string(self) -> str:
        return self.headers.get("User-Agent", "")

    # ── URLs ────────────────────────────────────────────────────────

    def root(self) -> str:
        """The application root URL without a trailing slash."""
        return self.root_url.rstrip("/")

    def current_url(self) -> str:
        """The request URL without query string or trailing slash."""
        return self.base_url.rstrip("/")

    def _query_separator(self) -> str:
        return "/?" if (self.script_root + self.path) == "/" else "?"

    def full_url(self) -> str:
        query = self.query_string.decode("latin-1")
        if not query:
            return self.current_url()
        return self.current_url() + self._query_separator() + query

    def full_url_with_query(self, query: Mapping[str, Any]) -> str:
        merged = self.query()
        merged.update(query)
        return self.current_url() + self._query_separator() + build_query(merged)

    def full_url_without_query(self, *keys) -> str:
        remaining = self.query()
        data_forget(remaining, flatten_keys(keys))
        if not remaining:
            return self.current_url()
        return self.current_url() + self._query_separator() + build_query(remaining)

    def trimmed_path(self) -> str:
        """The URL-encoded path without surrounding slashes; ``/`` for the root."""
        return iri_to_uri(self.path).strip("/") or "/"

    def decoded_path(self) -> str:
        return self.path.strip("/") or "/"

    def segments(self) -> List[str]:
        return [segment for segment in self.decoded_path().split("/") if segment]

    def segment(self, index: int, default: Optional[str] = None) -> Optional[str]:
        """Return the 1-based path segment at ``index``."""
        segments = self.segments()
        if 1 <= index <= len(segments):
            return segments[index - 1]
        return default
