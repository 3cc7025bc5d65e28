"""
QuickHTTP - request and response helpers on top of Werkzeug.

Adds input retrieval (``request.input("user.name")``), content negotiation
(``request.prefers("json", "html")``), URL helpers and upload storage to
Werkzeug's request, response and file classes.
"""

import logging

from quickhttp.bags import InputBag
from quickhttp.config import HttpConfig, default_config
from quickhttp.exceptions import DateParseError, InvalidArgument, QuickHTTPError
from quickhttp.files import UploadedFile
from quickhttp.input import InputResolver
from quickhttp.negotiation import ContentNegotiator
from quickhttp.request import Request
from quickhttp.response import HTMLResponse, JSONResponse, Response
from quickhttp.utils import data_get

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.9.0"
__all__ = [
    "Request",
    "Response",
    "JSONResponse",
    "HTMLResponse",
    "UploadedFile",
    "InputBag",
    "InputResolver",
    "ContentNegotiator",
    "HttpConfig",
    "default_config",
    "QuickHTTPError",
    "InvalidArgument",
    "DateParseError",
    "data_get",
]
