"""
Content negotiation against the client's ``Accept`` header.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from werkzeug.http import parse_list_header, parse_options_header

logger = logging.getLogger(__name__)

WILDCARDS = ("*/*", "*")

FORMATS: Dict[str, List[str]] = {
    "html": ["text/html", "application/xhtml+xml"],
    "txt": ["text/plain"],
    "js": ["application/javascript", "application/x-javascript", "text/javascript"],
    "css": ["text/css"],
    "json": ["application/json", "application/x-json"],
    "jsonld": ["application/ld+json"],
    "xml": ["text/xml", "application/xml", "application/x-xml"],
    "rdf": ["application/rdf+xml"],
    "atom": ["application/atom+xml"],
    "rss": ["application/rss+xml"],
    "form": ["application/x-www-form-urlencoded", "multipart/form-data"],
}


def parse_accept_header(value: Optional[str]) -> List[str]:
    """
    Rank the MIME types of an ``Accept`` header.

    Entries are ordered by descending quality; entries of equal quality
    keep their header order. ``q=0`` entries and entries whose quality is
    not a number are dropped.
    """
    if not value:
        return []

    ranked: List[Tuple[float, int, str]] = []
    for position, item in enumerate(parse_list_header(value)):
        mimetype, options = parse_options_header(item)
        if not mimetype:
            logger.debug("Skipping empty Accept entry %r", item)
            continue
        try:
            quality = float(options.get("q", 1))
        except ValueError:
            logger.debug("Skipping Accept entry with bad quality %r", item)
            continue
        if quality <= 0:
            continue
        ranked.append((quality, position, mimetype))

    ranked.sort(key=lambda entry: (-entry[0], entry[1]))
    return [mimetype for _, _, mimetype in ranked]


def _json_like(mimetype: str) -> bool:
    return "/json" in mimetype or "+json" in mimetype


class ContentNegotiator:
    """
    Accept-header driven negotiation for a host request.

    The host supplies ``header_bag``, ``server_bag`` and ``config``. The
    ranked Accept list is memoised for as long as the raw header is
    unchanged.
    """

    def __init__(self, host):
        self._host = host
        self._accept_cache: Optional[Tuple[Optional[str], List[str]]] = None

    # ── Format table ────────────────────────────────────────────────

    def _formats(self) -> Dict[str, List[str]]:
        extra = self._host.config.get("formats") or {}
        if not extra:
            return FORMATS
        formats = dict(FORMATS)
        for name, mimetypes in extra.items():
            formats[name] = [mimetypes] if isinstance(mimetypes, str) else list(mimetypes)
        return formats

    def get_format(self, mimetype: Optional[str]) -> Optional[str]:
        """Return the format token for ``mimetype``, ignoring parameters."""
        if not mimetype:
            return None
        canonical = mimetype.split(";", 1)[0].strip().lower()
        for name, mimetypes in self._formats().items():
            if canonical in mimetypes:
                return name
        return None

    def get_mime_type(self, format: str) -> Optional[str]:
        mimetypes = self._formats().get(format)
        return mimetypes[0] if mimetypes else None

    # ── Request content ─────────────────────────────────────────────

    def is_json(self) -> bool:
        return _json_like(self._host.header_bag.get("Content-Type") or "")

    def ajax(self) -> bool:
        return self._host.header_bag.get("X-Requested-With") == "XMLHttpRequest"

    def pjax(self) -> bool:
        return self._host.header_bag.get("X-PJAX") not in (None, "", "0")

    def prefetch(self) -> bool:
        candidates = (
            self._host.server_bag.get("HTTP_X_MOZ"),
            self._host.header_bag.get("Purpose"),
            self._host.header_bag.get("Sec-Purpose"),
        )
        return any((value or "").lower() == "prefetch" for value in candidates)

    # ── Accept header ───────────────────────────────────────────────

    def acceptable_content_types(self) -> List[str]:
        raw = self._host.header_bag.get("Accept")
        if self._accept_cache is None or self._accept_cache[0] != raw:
            self._accept_cache = (raw, parse_accept_header(raw))
        return list(self._accept_cache[1])

    def accepts_any_content_type(self) -> bool:
        acceptable = self.acceptable_content_types()
        return not acceptable or acceptable[0] in WILDCARDS

    def wants_json(self) -> bool:
        acceptable = self.acceptable_content_types()
        return bool(acceptable) and _json_like(acceptable[0].lower())

    def expects_json(self) -> bool:
        return (self.ajax() and not self.pjax() and self.accepts_any_content_type()) or self.wants_json()

    @staticmethod
    def matches_type(actual: str, type: str) -> bool:
        """
        Return True when ``type`` equals ``actual`` or is a structured
        syntax variant of it, e.g. ``application/vnd.api+json`` for
        ``application/json``.
        """
        if actual == type:
            return True
        parts = actual.split("/")
        if len(parts) < 2:
            return False
        pattern = re.escape(parts[0]) + "/.+\\+" + re.escape(parts[1])
        return re.fullmatch(pattern, type) is not None

    def _candidate_matches(self, candidate: str, accept: str, either_way: bool = False) -> bool:
        accept = accept.lower()
        candidate = candidate.lower()
        if self.matches_type(candidate, accept):
            return True
        if either_way and self.matches_type(accept, candidate):
            return True
        return accept == candidate.split("/", 1)[0] + "/*"

    def accepts(self, *content_types) -> bool:
        """Return True if any of ``content_types`` is acceptable to the client."""
        acceptable = self.acceptable_content_types()
        if not acceptable:
            return True

        candidates = _flatten(content_types)
        for accept in acceptable:
            if accept in WILDCARDS:
                return True
            for candidate in candidates:
                if self._candidate_matches(candidate, accept, either_way=True):
                    return True
        return False

    def accepts_json(self) -> bool:
        return self.accepts("application/json")

    def accepts_html(self) -> bool:
        return self.accepts("text/html")

    def prefers(self, *content_types) -> Optional[str]:
        """
        Return the candidate the client ranks highest.

        Candidates may be MIME types or format tokens such as ``"json"``;
        the matching candidate is returned exactly as given.
        """
        candidates = _flatten(content_types)
        if not candidates:
            return None

        for accept in self.acceptable_content_types():
            if accept in WILDCARDS:
                return candidates[0]
            for candidate in candidates:
                mimetype = self.get_mime_type(candidate) or candidate
                if self._candidate_matches(mimetype, accept):
                    return candidate
        return None

    def format(self, default: Optional[str] = None) -> str:
        """Return the format token of the first acceptable type that has one."""
        for mimetype in self.acceptable_content_types():
            found = self.get_format(mimetype)
            if found:
                return found
        if default is not None:
            return default
        return self._host.config.get("default_format")


def _flatten(content_types: Sequence) -> List[str]:
    flat: List[str] = []
    for item in content_types:
        if isinstance(item, (list, tuple)):
            flat.extend(item)
        else:
            flat.append(item)
    return flat
