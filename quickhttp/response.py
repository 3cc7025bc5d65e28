"""
Response classes for quickhttp.
"""

import html
import json
from typing import Any, Dict, Optional

from werkzeug.wrappers import Response as BaseResponse

from quickhttp.input import InputResolver


class Response(BaseResponse):
    """
    Base HTTP response, HTML by default.

    A response can be bound to the request it answers; the input helpers
    below then read that request's data.
    """

    default_mimetype = "text/html"

    def __init__(self, *args, request=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.request = None
        self._input: Optional[InputResolver] = None
        if request is not None:
            self.bind(request)

    @classmethod
    def for_request(cls, request, data: Any, status: int = 200) -> "Response":
        """Build a JSON or HTML response depending on what the client expects."""
        if request.expects_json() or request.format() == "json":
            return JSONResponse(data, status=status, request=request)
        # strings are taken as markup; anything else is shown as escaped text
        body = data if isinstance(data, str) else html.escape(str(data))
        return HTMLResponse(body, status=status, request=request)

    def bind(self, request) -> "Response":
        self.request = request
        self._input = InputResolver(request)
        return self

    def _resolver(self) -> InputResolver:
        if self._input is None:
            raise RuntimeError("Response is not bound to a request.")
        return self._input

    def redirect(self, url: str, permanent: bool = False) -> "Response":
        """Point this response at ``url`` with a 301 or 302 status."""
        self.headers.set("Location", url)
        self.status_code = 301 if permanent else 302
        return self

    def input(self, key: Optional[str] = None, default: Any = None) -> Any:
        return self._resolver().input(key, default)

    def all(self, keys=None) -> Dict[str, Any]:
        return self._resolver().all(keys)

    def only(self, *keys) -> Dict[str, Any]:
        return self._resolver().only(*keys)

    def except_(self, *keys) -> Dict[str, Any]:
        return self._resolver().except_(*keys)

    def has(self, *keys) -> bool:
        return self._resolver().has(*keys)

    def filled(self, *keys) -> bool:
        return self._resolver().filled(*keys)


class JSONResponse(Response):
    """JSON HTTP response."""

    def __init__(self, data: Any, status: int = 200, **kwargs):
        super().__init__(json.dumps(data), status=status, mimetype="application/json", **kwargs)
        self.payload = data


class HTMLResponse(Response):
    """HTML HTTP response."""

    def __init__(self, html_content: str, status: int = 200, **kwargs):
        super().__init__(html_content, status=status, mimetype="text/html", **kwargs)
