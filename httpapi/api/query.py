"""Typed access to query string parameters with deferred validation.

A handler usually reads several independent query parameters into one input
structure. ``QueryValues`` lets it do so without checking each one: values
that cannot be parsed are recorded and read as the type's zero value, and a
single call to ``err()`` (or ``check()``) afterwards reports every invalid
parameter at once.

Example:
    >>> q = QueryValues("limit=ten&offset=5&since=yesterday")
    >>> q.get_int("limit"), q.get_int("offset"), q.get_time("since")
    (0, 5, None)
    >>> str(q.err())
    '[VALIDATION_ERROR] invalid value(s) in query string: limit,since'
"""

import re
from datetime import UTC, date, datetime, timedelta, timezone

from starlette.datastructures import QueryParams
from starlette.requests import Request

from httpapi.api.constants import BLANK_QUERY_VALUES, INT64_MAX, INT64_MIN
from httpapi.core.exceptions import BadRequestError

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# RFC 3339 date-time with an optional fraction of up to nanosecond precision
_RFC3339_PATTERN = re.compile(
    r"(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{2})"
    r"T(?P<hour>[0-9]{2}):(?P<minute>[0-9]{2}):(?P<second>[0-9]{2})"
    r"(?:\.(?P<fraction>[0-9]{1,9}))?"
    r"(?P<offset>Z|[+-][0-9]{2}:[0-9]{2})"
)

_TRUE_VALUES = frozenset({"1", "true", "yes", "t"})
_FALSE_VALUES = frozenset({"0", "false", "no", "f"})


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Fractions beyond microseconds are truncated.

    Raises:
        ValueError: If ``value`` is not a valid RFC 3339 timestamp.
    """
    match = _RFC3339_PATTERN.fullmatch(value)
    if match is None:
        msg = f"not an RFC 3339 timestamp: {value!r}"
        raise ValueError(msg)

    offset = match["offset"]
    if offset == "Z":
        tzinfo = UTC
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))

    fraction = (match["fraction"] or "").ljust(6, "0")[:6]
    return datetime(
        int(match["year"]),
        int(match["month"]),
        int(match["day"]),
        int(match["hour"]),
        int(match["minute"]),
        int(match["second"]),
        int(fraction),
        tzinfo=tzinfo,
    )


class QueryValues:
    """Typed accessors for the query string of one request.

    Every type has a ``lookup_*`` method returning ``(value, present)`` and a
    ``get_*`` method returning just the value. A parameter that is absent and
    one that failed to parse both read as ``(zero, False)``; only ``err()``
    tells them apart. When a name is repeated, its first value is used.

    Args:
        query_string: A raw query string or already-parsed ``QueryParams``.
    """

    def __init__(self, query_string: str | QueryParams = "") -> None:
        if isinstance(query_string, QueryParams):
            self.values = query_string
        else:
            self.values = QueryParams(query_string)
        self.invalid_params: set[str] = set()

    def err(self) -> BadRequestError | None:
        """Return an error listing the invalid parameters, or None.

        Call this once, after every parameter the handler needs has been read.
        """
        if not self.invalid_params:
            return None
        names = ",".join(sorted(self.invalid_params))
        return BadRequestError(
            f"invalid value(s) in query string: {names}",
            context={"invalid_params": sorted(self.invalid_params)},
        )

    def check(self) -> None:
        """Raise the error returned by ``err()``, if there is one.

        Raises:
            BadRequestError: If any parameter read so far was invalid.
        """
        if (error := self.err()) is not None:
            raise error

    def has(self, name: str) -> bool:
        """Whether ``name`` appears in the query string at all."""
        return name in self.values

    def _first(self, name: str) -> str | None:
        values = self.values.getlist(name)
        return values[0] if values else None

    def _invalid(self, name: str) -> None:
        self.invalid_params.add(name)

    def lookup_int(self, name: str) -> tuple[int, bool]:
        """Return an integer and whether it was present and valid."""
        value = self._first(name)
        if value is None:
            return 0, False
        if _INT_PATTERN.fullmatch(value):
            number = int(value)
            if INT64_MIN <= number <= INT64_MAX:
                return number, True
        self._invalid(name)
        return 0, False

    def get_int(self, name: str) -> int:
        """Return an integer, or 0 if absent or invalid."""
        return self.lookup_int(name)[0]

    def lookup_bool(self, name: str) -> tuple[bool, bool]:
        """Return a boolean and whether it was present and valid.

        Accepts ``1/true/yes/t`` and ``0/false/no/f`` in any case.
        """
        value = self._first(name)
        if value is None:
            return False, False
        value = value.lower()
        if value in _TRUE_VALUES:
            return True, True
        if value in _FALSE_VALUES:
            return False, True
        self._invalid(name)
        return False, False

    def get_bool(self, name: str) -> bool:
        """Return a boolean, or False if absent or invalid."""
        return self.lookup_bool(name)[0]

    def lookup_time(self, name: str) -> tuple[datetime | None, bool]:
        """Return an RFC 3339 timestamp and whether it was present and valid.

        Blank values and the literals ``undefined`` and ``null`` count as
        absent, not invalid.
        """
        value = self._first(name)
        if value is None or value.strip() in BLANK_QUERY_VALUES:
            return None, False
        try:
            return parse_rfc3339(value.strip()), True
        except ValueError:
            self._invalid(name)
            return None, False

    def get_time(self, name: str) -> datetime | None:
        """Return an RFC 3339 timestamp, or None if absent or invalid."""
        return self.lookup_time(name)[0]

    def lookup_date(self, name: str) -> tuple[date | None, bool]:
        """Return a YYYY-MM-DD date and whether it was present and valid.

        Blank values and the literals ``undefined`` and ``null`` count as
        absent, not invalid.
        """
        value = self._first(name)
        if value is None or value.strip() in BLANK_QUERY_VALUES:
            return None, False
        value = value.strip()
        try:
            parsed = date.fromisoformat(value) if _DATE_PATTERN.fullmatch(value) else None
        except ValueError:
            parsed = None
        if parsed is None:
            self._invalid(name)
            return None, False
        return parsed, True

    def get_date(self, name: str) -> date | None:
        """Return a YYYY-MM-DD date, or None if absent or invalid."""
        return self.lookup_date(name)[0]

    def lookup_string(self, name: str) -> tuple[str, bool]:
        """Return a string and whether it was present."""
        value = self._first(name)
        if value is None:
            return "", False
        return value, True

    def get_string(self, name: str) -> str:
        """Return a string, or "" if absent."""
        return self.lookup_string(name)[0]


def query(request: Request) -> QueryValues:
    """Return the query string values of ``request``."""
    return QueryValues(request.query_params)
