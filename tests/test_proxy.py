"""
Test suite for the signing proxy

The rewrite tests exercise ProxySigner without sockets; the end-to-end tests
run the proxy against a local upstream on ephemeral ports.
"""

import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests

from skylark_curl.config import ProxyConfig
from skylark_curl.curl import CurlDriver
from skylark_curl.exceptions import ConfigurationError
from skylark_curl.proxy import (
    ForwardRequest,
    InboundRequest,
    ProxySigner,
    create_proxy_server,
)
from skylark_curl.signing import (
    Credentials,
    HeaderList,
    SigningError,
    SigningErrorCodes,
    create_verifier,
    descriptor_from_inbound,
)

TIME = '2016-03-23T19:04:45+0000'
PROXY_DIGEST = (
    'd4a2e875ea0d1fd30f76d3de72a85f4c46849c0d2a9fe8723829dc8bddf86d6e'
    '44b66459e7db5e887cb3228b34613cb000061e29de4c384bfd7a87d770ca670e'
)
PROXY_AUTH = f'SWIFTNAV-V1-PRF-HMAC-SHA-512 abc:{PROXY_DIGEST}'


def inbound_headers():
    return HeaderList([
        ('C', 'D'),
        ('X-SwiftNav-Proxy-Token', 'abc'),
        ('A', 'B'),
        ('X-SwiftNav-Proxy-Secret', 'def'),
        ('E', 'F'),
    ])


class TestProxySigner:
    """Test request rewriting"""

    def setup_method(self):
        self.signer = ProxySigner('http://localhost:3030', clock=lambda: TIME)

    def test_proxy_vector(self):
        """Test the signature for a proxied GET"""
        inbound = InboundRequest('GET', 'http://localhost:3031/a/b?c=d&g&e=f', inbound_headers())
        artifact = self.signer.rewrite(inbound)

        assert artifact.signed
        assert artifact.authorization == PROXY_AUTH
        assert artifact.request.target == '/a/b?c=d&g&e=f'

    def test_matches_curl_driver(self):
        """Test that proxy and curl signatures agree for the same request"""
        curl_artifact = CurlDriver().prepare(
            'http://localhost:3030/a/b?c=d&g&e=f',
            Credentials('abc', 'def'),
            TIME,
            ['-H', 'C: D', '-H', 'A: B', '-H', 'E: F'],
        )
        proxy_artifact = self.signer.rewrite(
            InboundRequest('GET', '/a/b?c=d&g&e=f', inbound_headers())
        )
        assert curl_artifact.authorization == proxy_artifact.authorization == PROXY_AUTH

    def test_forward_request(self):
        """Test the rewritten request sent upstream"""
        inbound = InboundRequest('GET', '/a/b?c=d&g&e=f', inbound_headers())
        forward = self.signer.rewrite(inbound).request

        assert isinstance(forward, ForwardRequest)
        assert forward.method == 'GET'
        assert forward.target == '/a/b?c=d&g&e=f'
        assert forward.url == 'http://localhost:3030/a/b?c=d&g&e=f'
        assert forward.headers.items() == [
            ('C', 'D'),
            ('A', 'B'),
            ('E', 'F'),
            ('X-SwiftNav-Date', TIME),
            ('Authorization', PROXY_AUTH),
            ('Host', 'localhost:3030'),
        ]

    def test_inbound_not_modified(self):
        """Test that rewriting works on a copy"""
        headers = inbound_headers()
        self.signer.rewrite(InboundRequest('GET', '/', headers))
        assert headers.items() == inbound_headers().items()

    def test_unsigned_passthrough(self):
        """Test forwarding without complete credentials"""
        headers = HeaderList([
            ('X-SwiftNav-Proxy-Token', 'abc'),
            ('X-SwiftNav-Proxy-Other', 'x'),
            ('Host', 'localhost:3031'),
            ('Accept', '*/*'),
        ])
        artifact = self.signer.rewrite(InboundRequest('POST', '/a', headers, b'payload'))
        forward = artifact.request

        assert not artifact.signed
        assert 'Authorization' not in forward.headers
        assert 'X-SwiftNav-Date' not in forward.headers
        assert forward.headers.with_prefix('X-SwiftNav-Proxy-') == []
        assert forward.headers.get('Host') == 'localhost:3030'
        assert forward.headers.get('Accept') == '*/*'
        assert forward.body == b'payload'

    def test_client_authorization_replaced(self):
        """Test that a signed request carries only the proxy's Authorization"""
        headers = inbound_headers()
        headers.add('Authorization', 'Basic Zm9vOmJhcg==')
        forward = self.signer.rewrite(InboundRequest('GET', '/a/b?c=d&g&e=f', headers)).request
        assert forward.headers.get_all('Authorization') == [PROXY_AUTH]

    def test_hop_by_hop_headers_dropped(self):
        """Test that connection-level headers are not forwarded"""
        headers = HeaderList([
            ('Connection', 'keep-alive'),
            ('Keep-Alive', 'timeout=5'),
            ('Transfer-Encoding', 'chunked'),
            ('Content-Length', '7'),
            ('Proxy-Authorization', 'secret'),
            ('Accept', '*/*'),
        ])
        forward = self.signer.rewrite(InboundRequest('PUT', '/', headers, b'payload')).request
        assert [name for name, _ in forward.headers] == ['Accept', 'Host']

    def test_body_is_signed(self):
        """Test that the buffered body is part of the signature"""
        one = self.signer.rewrite(InboundRequest('POST', '/', inbound_headers(), b'one'))
        two = self.signer.rewrite(InboundRequest('POST', '/', inbound_headers(), b'two'))
        assert one.authorization != two.authorization
        assert one.canonical_request.endswith(b'\none')

    @pytest.mark.parametrize('uri', [
        'localhost:3030',
        'ftp://localhost:3030',
        'http://localhost:3030/prefix',
        'http://localhost:3030/?a=b',
    ])
    def test_invalid_upstream(self, uri):
        """Test that unusable upstream URIs are rejected at startup"""
        with pytest.raises(ConfigurationError) as exc_info:
            ProxySigner(uri)
        assert exc_info.value.error_code == 'INVALID_UPSTREAM'

    def test_target_kept_verbatim(self):
        """Test that percent escapes and unusual characters are not normalized"""
        for target in ('/a%7Eb?c=d', '/a%7eb', '/a/b?x={1}', '/a|b'):
            forward = self.signer.rewrite(InboundRequest('GET', target, HeaderList())).request
            assert forward.target == target
            assert forward.url == 'http://localhost:3030' + target

    def test_non_ascii_target_rejected(self):
        """Test that targets which cannot go on a request line are refused"""
        with pytest.raises(SigningError) as exc_info:
            self.signer.rewrite(InboundRequest('GET', '/caf\u00e9', HeaderList()))
        assert exc_info.value.code == SigningErrorCodes.INVALID_REQUEST


class RecordingHandler(BaseHTTPRequestHandler):
    """Upstream that records each request and answers 201"""

    protocol_version = "HTTP/1.1"

    def _record(self):
        length = int(self.headers.get('Content-Length') or 0)
        body = self.rfile.read(length) if length else b''
        self.server.received.append({
            'method': self.command,
            'path': self.path,
            'headers': HeaderList(self.headers.items()),
            'body': body,
        })

        payload = b'hello'
        self.send_response(201)
        self.send_header('Content-Type', 'text/plain')
        self.send_header('X-Upstream', 'yes')
        self.send_header('Set-Cookie', 'a=1')
        self.send_header('Set-Cookie', 'b=2')
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        if self.command != 'HEAD':
            self.wfile.write(payload)

    do_GET = _record
    do_POST = _record
    do_PUT = _record
    do_DELETE = _record
    do_HEAD = _record

    def log_message(self, format, *args):
        pass


def start_in_thread(server):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return thread


def stop(server):
    server.shutdown()
    server.server_close()


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


@pytest.fixture
def upstream():
    server = ThreadingHTTPServer(('127.0.0.1', 0), RecordingHandler)
    server.daemon_threads = True
    server.received = []
    start_in_thread(server)
    yield server
    stop(server)


@pytest.fixture
def client():
    session = requests.Session()
    session.trust_env = False
    yield session
    session.close()


def start_proxy(upstream_uri):
    config = ProxyConfig(upstream_uri=upstream_uri, port=0, bind_address='127.0.0.1', timeout=5)
    server = create_proxy_server(config, clock=lambda: TIME)
    start_in_thread(server)
    return server


@pytest.fixture
def proxy(upstream):
    server = start_proxy(f"http://127.0.0.1:{upstream.server_address[1]}")
    yield server
    stop(server)


def proxy_url(server, target):
    return f"http://127.0.0.1:{server.server_address[1]}{target}"


def send_raw(server, request):
    """Write a raw request to the proxy and return the response status line."""
    address = ('127.0.0.1', server.server_address[1])
    with socket.create_connection(address, timeout=5) as sock:
        sock.sendall(request.encode('ascii'))
        response = b''
        while True:
            data = sock.recv(4096)
            if not data:
                break
            response += data
    return response.split(b'\r\n', 1)[0].decode('ascii')


def verify_received(upstream, received):
    """Check a request recorded by the upstream against the shared secret."""
    descriptor = descriptor_from_inbound(
        received['method'],
        received['path'],
        received['headers'],
        received['body'],
        f"http://127.0.0.1:{upstream.server_address[1]}",
    )
    verifier = create_verifier({'abc': 'def'}.get)
    return verifier.verify(descriptor, received['headers'].get('Authorization'))


class TestProxyEndToEnd:
    """Test the proxy over real sockets"""

    def test_signed_get(self, upstream, proxy, client):
        """Test that a signed request verifies at the upstream"""
        response = client.get(proxy_url(proxy, '/a/b?c=d&g&e=f'), headers={
            'C': 'D',
            'X-SwiftNav-Proxy-Token': 'abc',
            'A': 'B',
            'X-SwiftNav-Proxy-Secret': 'def',
            'E': 'F',
        })

        assert response.status_code == 201
        assert response.text == 'hello'
        assert response.headers['X-Upstream'] == 'yes'
        assert response.raw.headers.getlist('Set-Cookie') == ['a=1', 'b=2']

        [received] = upstream.received
        headers = received['headers']
        assert received['path'] == '/a/b?c=d&g&e=f'
        assert headers.with_prefix('X-SwiftNav-Proxy-') == []
        assert headers.get('X-SwiftNav-Date') == TIME
        assert headers.get('Host') == f"127.0.0.1:{upstream.server_address[1]}"
        assert [headers.get(name) for name in ('C', 'A', 'E')] == ['D', 'B', 'F']

        result = verify_received(upstream, received)
        assert result.valid, result.reason
        assert result.token == 'abc'

    def test_signed_post_body(self, upstream, proxy, client):
        """Test that the body is forwarded and covered by the signature"""
        response = client.post(
            proxy_url(proxy, '/submit'),
            data=b'{abc:123}',
            headers={
                'X-SwiftNav-Proxy-Token': 'abc',
                'X-SwiftNav-Proxy-Secret': 'def',
                'X-SwiftNav-Zap': 'zip',
            },
        )
        assert response.status_code == 201

        [received] = upstream.received
        assert received['body'] == b'{abc:123}'
        result = verify_received(upstream, received)
        assert result.valid, result.reason

    def test_chunked_request_body(self, upstream, proxy, client):
        """Test that chunked request bodies are buffered and forwarded"""
        def chunks():
            yield b'first,'
            yield b'second'

        response = client.put(proxy_url(proxy, '/upload'), data=chunks())
        assert response.status_code == 201
        assert upstream.received[0]['body'] == b'first,second'

    def test_unsigned_request(self, upstream, proxy, client):
        """Test forwarding without credentials"""
        response = client.get(proxy_url(proxy, '/status'), headers={'X-SwiftNav-Proxy-Token': 'abc'})
        assert response.status_code == 201

        headers = upstream.received[0]['headers']
        assert 'Authorization' not in headers
        assert 'X-SwiftNav-Date' not in headers
        assert 'X-SwiftNav-Proxy-Token' not in headers

    def test_head_request(self, upstream, proxy, client):
        """Test that HEAD responses carry headers but no body"""
        response = client.head(proxy_url(proxy, '/'))
        assert response.status_code == 201
        assert response.headers['Content-Length'] == '5'
        assert response.content == b''

    def test_upstream_unreachable(self, client):
        """Test that connection failures become 502"""
        server = start_proxy(f"http://127.0.0.1:{free_port()}")
        try:
            response = client.get(proxy_url(server, '/'))
            assert response.status_code == 502
        finally:
            stop(server)

    @pytest.mark.parametrize('target', [
        '/a%7Eb?c=d',
        '/a%7eb',
        '/a/b?x={1}',
        '/a|b',
    ])
    def test_target_forwarded_verbatim(self, upstream, proxy, target):
        """Test that the upstream sees the request target that was signed"""
        status_line = send_raw(proxy, (
            f'GET {target} HTTP/1.1\r\n'
            'Host: proxy\r\n'
            'X-SwiftNav-Proxy-Token: abc\r\n'
            'X-SwiftNav-Proxy-Secret: def\r\n'
            'Connection: close\r\n'
            '\r\n'
        ))
        assert status_line == 'HTTP/1.1 201 Created'

        [received] = upstream.received
        assert received['path'] == target
        result = verify_received(upstream, received)
        assert result.valid, result.reason

    def test_repeated_headers_forwarded(self, upstream, proxy):
        """Test that repeated header lines reach the upstream one by one"""
        status_line = send_raw(proxy, (
            'GET /a HTTP/1.1\r\n'
            'Host: proxy\r\n'
            'Accept: text/plain\r\n'
            'Accept: application/json\r\n'
            'X-SwiftNav-Zap: 2\r\n'
            'X-SwiftNav-Zap: 1\r\n'
            'X-SwiftNav-Proxy-Token: abc\r\n'
            'X-SwiftNav-Proxy-Secret: def\r\n'
            'Connection: close\r\n'
            '\r\n'
        ))
        assert status_line == 'HTTP/1.1 201 Created'

        [received] = upstream.received
        assert received['headers'].get_all('Accept') == ['text/plain', 'application/json']
        assert received['headers'].get_all('X-SwiftNav-Zap') == ['2', '1']
        result = verify_received(upstream, received)
        assert result.valid, result.reason

    def test_negative_content_length(self, upstream, proxy):
        """Test that a negative Content-Length is refused without forwarding"""
        status_line = send_raw(proxy, (
            'POST /a HTTP/1.1\r\n'
            'Host: proxy\r\n'
            'Content-Length: -1\r\n'
            '\r\n'
        ))
        assert status_line.startswith('HTTP/1.1 400')
        assert upstream.received == []
