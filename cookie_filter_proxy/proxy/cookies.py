"""
Cookie Filter

Parses the inbound Cookie header, keeps the cookies whose name matches the
configured prefix and re-serializes them for the origin request.
"""

import re
from typing import Iterable, List, NamedTuple, Optional
from urllib.parse import quote, unquote

import structlog

logger = structlog.get_logger(__name__)

# RFC 6265 cookie-name token: printable ASCII without separators ';' '=' and space
COOKIE_NAME_PATTERN = re.compile(r"^[\x21-\x3a\x3c\x3e-\x7e]+$")

# Characters left literal when encoding a value (URI component rules)
COOKIE_VALUE_SAFE = "!*'()"

COOKIE_SEPARATOR = "; "

# A '%' that does not start a two-digit hex escape
MALFORMED_ESCAPE_PATTERN = re.compile(r"%(?![0-9A-Fa-f]{2})")


class InvalidCookieName(ValueError):
    """Raised when a cookie name cannot be written into a Cookie header."""


class CookieEntry(NamedTuple):
    """A single name/value pair from a Cookie header."""

    name: str
    value: str


def _decode_value(value: str) -> str:
    """Percent-decode a value as a whole; any bad escape keeps it raw."""
    if "%" not in value or MALFORMED_ESCAPE_PATTERN.search(value):
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def parse_cookie_header(header: Optional[str]) -> List[CookieEntry]:
    """
    Parse a Cookie header into entries, in order of appearance.

    Segments without '=' or with an empty name are skipped. When a name
    repeats, the first value wins.

    Args:
        header: Raw Cookie header value (None is treated as empty)

    Returns:
        List of CookieEntry
    """
    entries: List[CookieEntry] = []
    if not header:
        return entries

    seen = set()
    for segment in header.split(";"):
        name, sep, value = segment.partition("=")
        name = name.strip(" \t")
        if not sep or not name:
            if segment.strip(" \t"):
                logger.debug("cookie_segment_skipped", reason="malformed")
            continue
        if name in seen:
            continue
        seen.add(name)

        value = value.strip(" \t")
        if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
            value = value[1:-1]

        entries.append(CookieEntry(name, _decode_value(value)))

    return entries


def serialize_cookie(name: str, value: str) -> str:
    """
    Serialize one cookie as ``name=value`` with the value percent-encoded.

    Raises:
        InvalidCookieName: if the name is not a valid cookie-name token
    """
    if not COOKIE_NAME_PATTERN.match(name):
        raise InvalidCookieName(f"invalid cookie name: {name!r}")
    return f"{name}={quote(value, safe=COOKIE_VALUE_SAFE)}"


def select_cookies(entries: Iterable[CookieEntry], prefix: str) -> List[CookieEntry]:
    """Keep entries whose name starts with prefix; an empty prefix keeps all."""
    if not prefix:
        return list(entries)
    return [entry for entry in entries if entry.name.startswith(prefix)]


def serialize_cookies(entries: Iterable[CookieEntry]) -> str:
    """Join serialized entries with '; ', skipping names that cannot be written."""
    parts = []
    for entry in entries:
        try:
            parts.append(serialize_cookie(entry.name, entry.value))
        except InvalidCookieName:
            logger.debug("cookie_segment_skipped", reason="invalid_name")
    return COOKIE_SEPARATOR.join(parts)


def filter_cookies(header: Optional[str], prefix: str) -> str:
    """
    Filter a raw Cookie header down to the cookies matching prefix.

    Never raises; malformed input only results in fewer cookies.

    Args:
        header: Raw inbound Cookie header (may be None)
        prefix: Cookie name prefix, empty to forward every cookie

    Returns:
        Serialized Cookie header value, empty when no cookie survives
    """
    return serialize_cookies(select_cookies(parse_cookie_header(header), prefix))


class CookieFilter:
    """Cookie filter bound to a configured name prefix."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def filter(self, header: Optional[str]) -> str:
        return filter_cookies(header, self.prefix)
