"""
Canonical request construction for SWIFTNAV-V1 HMAC signatures

This module serializes a request descriptor into the exact byte string that
gets HMACed. The layout is::

    METHOD
    path
    host
    port
    ?canonical-query
    canonical-headers
    body

Header names are case-folded and both headers and query parameters are sorted,
so callers may supply them in any order or casing and still get the same
signature.
"""

from typing import Iterable, List

from .constants import DATE_HEADER, SIGNED_HEADER_PREFIX
from .types import (
    HeaderPair,
    QueryPair,
    RequestDescriptor,
    SigningError,
    SigningErrorCodes,
)
from .utils import collation_key, normalize_header_name


def signed_headers(headers: Iterable[HeaderPair]) -> List[HeaderPair]:
    """
    Select and order the headers that participate in the signature.

    Args:
        headers: Request headers in caller order

    Returns:
        list: (lower-cased name, value) pairs in collation order of their
        ``name:value`` lines
    """
    kept = [
        (name.lower(), value)
        for name, value in headers
        if name.lower().startswith(SIGNED_HEADER_PREFIX)
    ]
    return sorted(kept, key=lambda pair: collation_key(f"{pair[0]}:{pair[1]}"))


def canonicalize_headers(headers: Iterable[HeaderPair]) -> str:
    """
    Build the canonical header block.

    Returns:
        str: ``name:value`` lines joined with newlines, or an empty string
        when no vendor header is present
    """
    return "\n".join(f"{name}:{value}" for name, value in signed_headers(headers))


def canonicalize_query(query: Iterable[QueryPair]) -> str:
    """
    Build the canonical query string, always starting with ``?``.

    Parameters are ordered by collated name, then by value so the order is
    total. Empty values are written as a bare name.
    """
    ordered = sorted(query, key=lambda pair: (collation_key(pair[0]), pair[1]))
    segments = [f"{name}={value}" if value else name for name, value in ordered]
    return "?" + "&".join(segments)


class CanonicalRequestBuilder:
    """
    Canonical request builder for SWIFTNAV-V1 signatures
    """

    def __init__(self, descriptor: RequestDescriptor):
        """
        Initialize canonical request builder.

        Args:
            descriptor: Request to serialize
        """
        self.descriptor = descriptor

    def build(self) -> bytes:
        """
        Build the canonical request for signing.

        Returns:
            bytes: Canonical request, UTF-8 header section followed by the raw body

        Raises:
            SigningError: If the date header is missing
        """
        self._require_date_header()

        lines = [
            self.descriptor.method.upper(),
            self.descriptor.path,
            self.descriptor.host,
            str(self.descriptor.port),
            canonicalize_query(self.descriptor.query),
            canonicalize_headers(self.descriptor.headers),
        ]
        head = "\n".join(lines) + "\n"
        return head.encode('utf-8') + self.descriptor.body_bytes()

    def _require_date_header(self) -> None:
        wanted = normalize_header_name(DATE_HEADER)
        for name, _ in self.descriptor.headers:
            if normalize_header_name(name) == wanted:
                return
        raise SigningError(
            f"{DATE_HEADER} header is required for signing",
            SigningErrorCodes.MISSING_DATE_HEADER,
            {"headers": [name for name, _ in self.descriptor.headers]}
        )


def build_canonical_request(descriptor: RequestDescriptor) -> bytes:
    """
    Build canonical request for signing.

    Args:
        descriptor: Request descriptor

    Returns:
        bytes: Canonical request

    Raises:
        SigningError: If the request cannot be canonicalized
    """
    builder = CanonicalRequestBuilder(descriptor)
    return builder.build()
