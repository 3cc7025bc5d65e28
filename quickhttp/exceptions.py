"""
Exceptions raised by quickhttp.

Missing input never raises: lookups resolve to the caller's default. These
errors are reserved for values the caller explicitly asked to coerce.
"""


class QuickHTTPError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgument(QuickHTTPError, ValueError):
    """A value could not be coerced to the requested type."""


class DateParseError(QuickHTTPError, ValueError):
    """An input value could not be parsed as a date."""

    def __init__(self, key: str, value, date_format=None):
        self.key = key
        self.value = value
        self.format = date_format
        if date_format:
            message = f"Input {key!r} value {value!r} does not match format {date_format!r}"
        else:
            message = f"Input {key!r} value {value!r} is not a recognisable date"
        super().__init__(message)
