"""
Request descriptor extraction

Two ways of arriving at a RequestDescriptor: from curl-style arguments given
on the command line, and from a request received by the proxy. The proxy
variant also pulls the caller's credentials out of the proxy-control headers.
"""

from typing import List, Optional, Sequence, Union

from .constants import DEFAULT_METHOD, PROXY_HEADER_PREFIX, SECRET_HEADER, TOKEN_HEADER
from .headers import HeaderList
from .types import Credentials, RequestBody, RequestDescriptor
from .utils import (
    UrlParts,
    parse_header_line,
    parse_query,
    parse_url,
    split_request_target,
)

HEADER_FLAG = "-H"
METHOD_FLAG = "-X"
DATA_FLAG = "--data"


def lookup_arg(args: Sequence[str], key: str) -> Optional[str]:
    """
    Value following the first occurrence of ``key``.

    ``lookup_arg(['-X', 'POST'], '-X')`` returns ``'POST'``.
    """
    for index, arg in enumerate(args):
        if arg == key:
            return args[index + 1] if index + 1 < len(args) else None
    return None


def lookup_all_args(args: Sequence[str], key: str) -> List[str]:
    """Values following every occurrence of ``key``."""
    found = []
    for index, arg in enumerate(args):
        if arg == key and index + 1 < len(args):
            found.append(args[index + 1])
    return found


def headers_from_curl_args(args: Sequence[str]) -> HeaderList:
    """Collect every ``-H 'Name: value'`` argument into a HeaderList."""
    headers = HeaderList()
    for line in lookup_all_args(args, HEADER_FLAG):
        parsed = parse_header_line(line)
        if parsed is not None:
            headers.add(*parsed)
    return headers


def descriptor_from_curl_args(uri: Union[str, UrlParts], args: Sequence[str]) -> RequestDescriptor:
    """
    Build a descriptor from a target URI and curl arguments.

    Only ``-H``, ``-X`` and ``--data`` are interpreted; everything else is left
    for curl.

    Raises:
        SigningError: If the URI is malformed
    """
    target = uri if isinstance(uri, UrlParts) else parse_url(uri)
    return RequestDescriptor(
        method=lookup_arg(args, METHOD_FLAG) or DEFAULT_METHOD,
        path=target.path,
        host=target.host,
        port=target.port,
        query=parse_query(target.query),
        headers=headers_from_curl_args(args).items(),
        body=lookup_arg(args, DATA_FLAG) or "",
    )


def extract_credentials(headers: HeaderList) -> Credentials:
    """
    Pull the proxy token and secret out of ``headers``.

    This is destructive: both headers are removed, along with anything else
    carrying the proxy-control prefix, so they can never be forwarded.
    """
    token = headers.extract(TOKEN_HEADER)
    secret = headers.extract(SECRET_HEADER)
    headers.remove_prefix(PROXY_HEADER_PREFIX)
    return Credentials(token=token, secret=secret)


def descriptor_from_inbound(
    method: str,
    target: str,
    headers: HeaderList,
    body: Optional[RequestBody],
    upstream: Union[str, UrlParts],
) -> RequestDescriptor:
    """
    Build a descriptor for a request received by the proxy.

    Path and query come from the inbound request target; host and port come
    from the upstream the request will be forwarded to, never from the
    inbound Host header.

    Args:
        method: Inbound request method
        target: Request-line target, origin-form or absolute-form
        headers: Inbound headers with proxy-control headers already extracted
        body: Fully buffered request body
        upstream: Upstream URI or its parsed parts
    """
    destination = upstream if isinstance(upstream, UrlParts) else parse_url(upstream)
    path, query = split_request_target(target)
    return RequestDescriptor(
        method=method or DEFAULT_METHOD,
        path=path,
        host=destination.host,
        port=destination.port,
        query=parse_query(query),
        headers=headers.items(),
        body=body or b"",
    )
