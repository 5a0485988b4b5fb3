"""
skylark-curl
Signs HTTP requests for Skylark with SWIFTNAV-V1 HMAC-SHA-512, either by
driving curl or by running a signing proxy
"""

from .version import __version__
from .exceptions import (
    SkylarkError,
    ValidationError,
    ConfigurationError,
    StorageError,
    TransportError,
)
from .signing import (
    SCHEME,
    DATE_HEADER,
    AUTH_HEADER,
    RequestDescriptor,
    Credentials,
    SignedArtifact,
    VerificationResult,
    SigningError,
    HeaderList,
    HmacSigner,
    HmacVerifier,
    build_canonical_request,
    sign_request,
    SigningSession,
    create_signing_session,
    sign_prepared_request,
)
from .crypto import (
    CredentialStore,
    hmac_sha512_hex,
)
from .config import (
    SkylarkConfig,
    ProxyConfig,
    load_config,
)
from .curl import (
    CurlDriver,
    CurlInvocation,
    CommandRunner,
    SubprocessRunner,
    prepare_curl,
)
from .proxy import (
    ProxySigner,
    ProxyServer,
    InboundRequest,
    ForwardRequest,
    create_proxy_server,
    run_proxy,
)

__all__ = [
    '__version__',
    'SkylarkError',
    'ValidationError',
    'ConfigurationError',
    'StorageError',
    'TransportError',
    'SCHEME',
    'DATE_HEADER',
    'AUTH_HEADER',
    'RequestDescriptor',
    'Credentials',
    'SignedArtifact',
    'VerificationResult',
    'SigningError',
    'HeaderList',
    'HmacSigner',
    'HmacVerifier',
    'build_canonical_request',
    'sign_request',
    'SigningSession',
    'create_signing_session',
    'sign_prepared_request',
    'CredentialStore',
    'hmac_sha512_hex',
    'SkylarkConfig',
    'ProxyConfig',
    'load_config',
    'CurlDriver',
    'CurlInvocation',
    'CommandRunner',
    'SubprocessRunner',
    'prepare_curl',
    'ProxySigner',
    'ProxyServer',
    'InboundRequest',
    'ForwardRequest',
    'create_proxy_server',
    'run_proxy',
]
