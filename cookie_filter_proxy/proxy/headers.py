"""
Outbound Header Allowlist

The origin only ever sees the headers listed in FORWARDED_HEADERS; every other
inbound header is dropped.
"""

from typing import Dict, Mapping, Tuple

# (outbound header, inbound header it is read from)
FORWARDED_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("X-Forwarded-Host", "host"),
    ("Referer", "referer"),
    ("Origin", "origin"),
    ("Content-Type", "content-type"),
    ("Accept", "accept"),
    ("Cookie", "cookie"),
)

COOKIE_HEADER = "Cookie"

# Framing headers the transport may set on the outbound request
TRANSPORT_HEADERS = frozenset({"host", "content-length", "transfer-encoding"})

ALLOWED_OUTBOUND_HEADERS = frozenset(
    name.lower() for name, _ in FORWARDED_HEADERS
) | TRANSPORT_HEADERS


def build_origin_headers(
    inbound_headers: Mapping[str, str],
    cookie: str,
) -> Dict[str, str]:
    """
    Build the outbound header set from the inbound request headers.

    Missing inbound headers become empty strings; the Cookie value is the
    already filtered cookie header.

    Args:
        inbound_headers: Case-insensitive mapping of inbound headers
        cookie: Filtered and serialized Cookie header

    Returns:
        Dict with exactly the allowlisted outbound headers
    """
    headers = {}
    for outbound_name, inbound_name in FORWARDED_HEADERS:
        if outbound_name == COOKIE_HEADER:
            headers[outbound_name] = cookie
        else:
            headers[outbound_name] = inbound_headers.get(inbound_name) or ""
    return headers
