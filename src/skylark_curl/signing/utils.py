"""
Utility functions for request signing

This module provides URL and query-string parsing, header line parsing and
timestamp handling used when building request descriptors.
"""

from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Tuple
from urllib.parse import urlsplit

from .constants import DEFAULT_PORTS, TIMESTAMP_FORMAT
from .types import (
    QueryPair,
    SigningError,
    SigningErrorCodes,
)


class UrlParts(NamedTuple):
    """Components of a URL needed for signing"""
    scheme: str
    host: str
    port: int
    path: str
    query: str

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def host_header(self) -> str:
        return f"{self.host}:{self.port}"


def parse_url(url: str) -> UrlParts:
    """
    Parse URL to extract components needed for signing.

    Args:
        url: Absolute http(s) URL

    Returns:
        UrlParts: scheme, host, port (explicit or scheme default), path
        (``/`` when empty) and raw query string

    Raises:
        SigningError: If the URL is not an absolute http(s) URL or the port
            is not numeric
    """
    if not url or not isinstance(url, str):
        raise SigningError(
            "URL cannot be empty",
            SigningErrorCodes.INVALID_URL,
            {"url": url}
        )

    try:
        parsed = urlsplit(url)
        scheme = parsed.scheme.lower()
        host = parsed.hostname
        explicit_port = parsed.port
    except ValueError as e:
        raise SigningError(
            f"Failed to parse URL: {e}",
            SigningErrorCodes.INVALID_URL,
            {"url": url, "original_error": str(e)}
        )

    if scheme not in DEFAULT_PORTS:
        raise SigningError(
            f"Unsupported URL scheme: {parsed.scheme or '(none)'}",
            SigningErrorCodes.INVALID_URL,
            {"url": url, "scheme": parsed.scheme}
        )

    if not host:
        raise SigningError(
            f"Invalid URL format: {url}",
            SigningErrorCodes.INVALID_URL,
            {"url": url}
        )

    port = explicit_port if explicit_port is not None else DEFAULT_PORTS[scheme]

    return UrlParts(
        scheme=scheme,
        host=host,
        port=port,
        path=parsed.path or "/",
        query=parsed.query,
    )


def split_request_target(target: str) -> Tuple[str, str]:
    """
    Split a request-line target into path and query string.

    Accepts origin-form (``/a/b?c=d``) and absolute-form
    (``http://host/a/b?c=d``) targets.
    """
    if "://" in target:
        parsed = urlsplit(target)
        return parsed.path or "/", parsed.query
    path, _, query = target.partition("?")
    return path or "/", query


def parse_query(query: Optional[str]) -> List[QueryPair]:
    """
    Split a raw query string into (name, value) pairs.

    Segments are split on the first ``=``; a bare flag gets an empty value and
    empty segments are skipped. Nothing is percent-decoded.
    """
    pairs = []
    for segment in (query or "").split("&"):
        if not segment:
            continue
        name, _, value = segment.partition("=")
        pairs.append((name, value))
    return pairs


def parse_header_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Parse a ``Name: value`` header line as given to curl's ``-H``.

    Returns None for lines without a colon or with an empty name.
    """
    name, sep, value = line.partition(":")
    name = name.strip()
    if not sep or not name:
        return None
    return name, value.strip()


def normalize_header_name(name: str) -> str:
    """
    Normalize header name to lowercase for consistent processing.

    Args:
        name: Header name to normalize

    Returns:
        str: Lowercase header name
    """
    return name.lower().strip()


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a time as ISO 8601 in UTC with a numeric offset.

    Args:
        moment: Time to format (uses the current time if None)

    Returns:
        str: e.g. ``2016-03-23T19:04:45+0000``
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def validate_timestamp(value: str) -> bool:
    """
    Check that a timestamp is ISO 8601 with a UTC offset.

    Args:
        value: Timestamp string supplied by the caller

    Returns:
        bool: True if the timestamp can be parsed
    """
    if not isinstance(value, str) or not value:
        return False
    try:
        datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return False
    return True


# Whitespace, punctuation and symbols in locale collation order
COLLATION_PUNCTUATION = "\t\n\x0b\x0c\r _-,;:!?.'\"()[]{}@*/\\&#%`^+<=>|~$"


def collation_key(text: str) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    """
    Sort key matching locale-aware string comparison for ASCII text.

    Punctuation sorts before digits and digits before letters, with ``_``
    before ``-`` before ``:``. Letters compare case-insensitively first and
    lower case wins remaining ties. Characters outside ASCII follow the
    letters in code point order.

    Args:
        text: String to order

    Returns:
        tuple: (primary weights, case weights)
    """
    primary = []
    tertiary = []
    for char in text:
        lowered = char.lower()
        index = COLLATION_PUNCTUATION.find(char)
        if index >= 0:
            primary.append(index)
        elif '0' <= char <= '9':
            primary.append(100 + ord(char) - ord('0'))
        elif 'a' <= lowered <= 'z':
            primary.append(200 + ord(lowered) - ord('a'))
        else:
            primary.append(1000 + ord(char))
        tertiary.append(1 if char != lowered else 0)
    return tuple(primary), tuple(tertiary)
