"""
Signing proxy for skylark-curl

An HTTP server that accepts plain requests carrying credentials in the
X-SwiftNav-Proxy-Token and X-SwiftNav-Proxy-Secret headers, signs them on the
caller's behalf and relays them to one fixed upstream. The credentials never
reach the upstream.
"""

import contextlib
import http.client
import logging
import ssl
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional
from urllib.parse import urlsplit, urlunsplit

from .config import ProxyConfig
from .exceptions import ConfigurationError
from .signing.constants import AUTH_HEADER, DATE_HEADER, HOST_HEADER
from .signing.extractors import descriptor_from_inbound, extract_credentials
from .signing.headers import HeaderList
from .signing.signer import HmacSigner
from .signing.types import SignedArtifact, SigningError, SigningErrorCodes
from .signing.utils import format_timestamp, parse_url

logger = logging.getLogger(__name__)

# Connection-level headers that must not be relayed in either direction
HOP_BY_HOP_HEADERS = frozenset([
    'connection',
    'keep-alive',
    'proxy-authenticate',
    'proxy-authorization',
    'proxy-connection',
    'te',
    'trailers',
    'transfer-encoding',
    'upgrade',
])

CHUNK_SIZE = 64 * 1024

# Methods sent without Content-Length when they carry no body
BODYLESS_METHODS = frozenset(["GET", "HEAD"])


@dataclass
class InboundRequest:
    """A request as received by the proxy, body fully buffered"""
    method: str
    target: str
    headers: HeaderList = field(default_factory=HeaderList)
    body: bytes = b""


@dataclass
class ForwardRequest:
    """A rewritten request ready to send upstream"""
    method: str
    target: str
    url: str
    headers: HeaderList
    body: bytes = b""


def strip_hop_by_hop(headers: HeaderList) -> None:
    for name in HOP_BY_HOP_HEADERS:
        headers.remove(name)


class ProxySigner:
    """
    Rewrites inbound requests for the upstream

    Holds only the upstream address, so one instance is shared by every
    handler thread.
    """

    def __init__(self, upstream_uri: str, clock: Optional[Callable[[], str]] = None):
        """
        Args:
            upstream_uri: Origin every request is forwarded to
            clock: Returns the date header value (defaults to now)

        Raises:
            ConfigurationError: If the upstream URI is malformed or has a
                path or query
        """
        try:
            self.upstream = parse_url(upstream_uri)
        except SigningError as e:
            raise ConfigurationError(f"Invalid upstream URI: {e.message}", "INVALID_UPSTREAM")
        if self.upstream.path != "/" or self.upstream.query:
            raise ConfigurationError(
                f"Upstream URI must be an origin without path or query: {upstream_uri}",
                "INVALID_UPSTREAM"
            )
        self.clock = clock or format_timestamp

    def forward_target(self, target: str) -> str:
        """
        Origin-form target to send upstream.

        Origin-form targets are returned exactly as received, percent
        escapes included; the signature covers them verbatim.
        """
        if "://" in target:
            parsed = urlsplit(target)
            return urlunsplit(("", "", parsed.path or "/", parsed.query, ""))
        return target or "/"

    def forward_url(self, target: str) -> str:
        return self.upstream.origin + self.forward_target(target)

    def rewrite(self, inbound: InboundRequest) -> SignedArtifact:
        """
        Strip credentials, sign and rewrite headers for one request.

        The inbound request is left untouched; all changes are made on a copy
        of its headers.

        Returns:
            SignedArtifact: Signing result whose ``request`` is a ForwardRequest

        Raises:
            SigningError: If the inbound request cannot be canonicalized
        """
        if not inbound.target.isascii():
            raise SigningError(
                "Request target must be ASCII",
                SigningErrorCodes.INVALID_REQUEST,
                details={"target": inbound.target}
            )

        headers = inbound.headers.copy()
        credentials = extract_credentials(headers)
        headers.remove(HOST_HEADER)
        headers.remove('content-length')
        strip_hop_by_hop(headers)

        descriptor = descriptor_from_inbound(
            inbound.method,
            inbound.target,
            headers,
            inbound.body,
            self.upstream,
        )

        if credentials.is_complete:
            logger.info(f"Signing with token: {credentials.token}")
        else:
            logger.info("Not signing")

        artifact = HmacSigner(credentials).sign(descriptor, self.clock())
        if artifact.signed:
            headers.set(DATE_HEADER, artifact.date)
            headers.set(AUTH_HEADER, artifact.authorization)
        headers.set(HOST_HEADER, self.upstream.host_header)

        artifact.request = ForwardRequest(
            method=descriptor.method,
            target=self.forward_target(inbound.target),
            url=self.forward_url(inbound.target),
            headers=headers,
            body=inbound.body,
        )
        return artifact


class ProxyServer(ThreadingHTTPServer):
    """Threaded HTTP server that owns the signer and the upstream connection settings"""

    daemon_threads = True

    def __init__(self, server_address, signer: ProxySigner,
                 timeout: Optional[float] = None, verify_ssl: bool = True):
        self.signer = signer
        self.upstream_timeout = timeout
        self.ssl_context = create_upstream_ssl_context(verify_ssl)
        super().__init__(server_address, ProxyRequestHandler)

    def open_upstream(self) -> http.client.HTTPConnection:
        """New connection to the upstream; one per forwarded request."""
        upstream = self.signer.upstream
        if upstream.scheme == "https":
            return http.client.HTTPSConnection(
                upstream.host,
                upstream.port,
                timeout=self.upstream_timeout,
                context=self.ssl_context,
            )
        return http.client.HTTPConnection(upstream.host, upstream.port, timeout=self.upstream_timeout)

    def forward(self, connection: http.client.HTTPConnection,
                request: ForwardRequest) -> http.client.HTTPResponse:
        """
        Send one request upstream; never retried, never redirected.

        The request line carries ``request.target`` byte for byte, so the
        upstream sees the path and query that were signed.

        Raises:
            OSError: If the upstream cannot be reached
            http.client.HTTPException: If the upstream response is malformed
        """
        connection.putrequest(request.method, request.target, skip_host=True, skip_accept_encoding=True)
        for name, value in request.headers:
            connection.putheader(name, value)
        if request.body or request.method not in BODYLESS_METHODS:
            connection.putheader("Content-Length", str(len(request.body)))
        connection.endheaders(request.body or None)
        return connection.getresponse()


class ProxyRequestHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    # Map all HTTP verbs to one function
    def do_GET(self):
        self._proxy()

    def do_POST(self):
        self._proxy()

    def do_PUT(self):
        self._proxy()

    def do_DELETE(self):
        self._proxy()

    def do_HEAD(self):
        self._proxy()

    def do_PATCH(self):
        self._proxy()

    def do_OPTIONS(self):
        self._proxy()

    def _read_chunked_body(self) -> bytes:
        """Read chunked transfer-encoded body"""
        chunks = []
        while True:
            size_line = self.rfile.readline().decode("ascii").strip()
            chunk_size = int(size_line.split(";")[0], 16)
            if chunk_size == 0:
                # Trailer section ends with an empty line
                while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                    pass
                break
            chunks.append(self.rfile.read(chunk_size))
            self.rfile.readline()
        return b"".join(chunks)

    def _read_body(self) -> bytes:
        """Buffer the whole request body; it is part of the signed message."""
        transfer_encoding = self.headers.get("Transfer-Encoding", "").lower()
        content_length = self.headers.get("Content-Length")

        if "chunked" in transfer_encoding:
            return self._read_chunked_body()
        if content_length:
            length = int(content_length)
            if length < 0:
                raise ValueError(f"negative Content-Length: {content_length}")
            return self.rfile.read(length)
        return b""

    def _proxy(self) -> None:
        logger.info(f"{self.command} {self.path}")

        try:
            body = self._read_body()
        except ValueError as e:
            self.send_error(400, f"Malformed request body: {e}")
            return

        inbound = InboundRequest(
            method=self.command,
            target=self.path,
            headers=HeaderList(self.headers.items()),
            body=body,
        )

        try:
            artifact = self.server.signer.rewrite(inbound)
        except SigningError as e:
            logger.warning(f"Rejecting request: {e.message}")
            self.send_error(400, e.message)
            return

        with contextlib.closing(self.server.open_upstream()) as connection:
            try:
                response = self.server.forward(connection, artifact.request)
            except (OSError, http.client.HTTPException) as e:
                logger.error(f"Proxy error: {e}")
                self.send_error(502, "Bad Gateway")
                return

            with contextlib.closing(response):
                self._relay(response)

    def _relay(self, response: http.client.HTTPResponse) -> None:
        """Write the upstream status, headers and raw body back to the caller."""
        self.send_response_only(response.status, response.reason)
        self.log_request(response.status)

        has_length = False
        for name, value in response.getheaders():
            if name.lower() in HOP_BY_HOP_HEADERS:
                continue
            if name.lower() == 'content-length':
                has_length = True
            self.send_header(name, value)

        if not has_length:
            # Body length unknown; delimit it by closing the connection
            self.send_header("Connection", "close")
            self.close_connection = True
        self.end_headers()

        if self.command == "HEAD":
            return
        # Content-Encoding is relayed as is; only transfer framing is undone
        while True:
            chunk = response.read(CHUNK_SIZE)
            if not chunk:
                break
            self.wfile.write(chunk)

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} {format % args}")


def create_upstream_ssl_context(verify_ssl: bool = True) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if not verify_ssl:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def create_proxy_server(config: ProxyConfig, clock: Optional[Callable[[], str]] = None) -> ProxyServer:
    """
    Build (and bind) a proxy server from configuration.

    Raises:
        ConfigurationError: If the upstream URI is unusable
    """
    signer = ProxySigner(config.upstream_uri, clock)
    return ProxyServer(
        (config.bind_address, config.port),
        signer,
        timeout=config.timeout,
        verify_ssl=config.verify_ssl,
    )


def run_proxy(config: ProxyConfig) -> None:
    """Serve until interrupted."""
    server = create_proxy_server(config)
    logger.info(f"listening on port {server.server_address[1]}")
    try:
        server.serve_forever()
    finally:
        server.server_close()
