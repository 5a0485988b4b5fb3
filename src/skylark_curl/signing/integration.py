"""
HTTP client integration for request signing

This module signs requests sent with the ``requests`` library, so Python
callers get the same Authorization header the curl driver and the proxy
produce without shelling out.
"""

import logging
from typing import Any, Optional

import requests
from requests.models import PreparedRequest

from .constants import AUTH_HEADER, DATE_HEADER
from .extractors import descriptor_from_inbound
from .headers import HeaderList
from .signer import HmacSigner
from .types import (
    Credentials,
    SignedArtifact,
    SigningError,
    SigningErrorCodes,
)
from .utils import parse_url

logger = logging.getLogger(__name__)


def sign_prepared_request(
    prepared: PreparedRequest,
    credentials: Optional[Credentials],
    timestamp: Optional[str] = None
) -> SignedArtifact:
    """
    Sign a prepared request in place.

    The date header is always set; the Authorization header only when the
    credentials are complete.

    Args:
        prepared: Prepared request, as it will go on the wire
        credentials: Token and secret
        timestamp: Optional date header value

    Returns:
        SignedArtifact: Signing result whose ``request`` is ``prepared``

    Raises:
        SigningError: If the request has a streaming body or a bad URL
    """
    body = prepared.body
    if body is not None and not isinstance(body, (str, bytes)):
        raise SigningError(
            "Streaming request bodies cannot be signed",
            SigningErrorCodes.INVALID_REQUEST,
            {"body_type": str(type(body))}
        )

    upstream = parse_url(prepared.url)
    descriptor = descriptor_from_inbound(
        prepared.method,
        prepared.path_url,
        HeaderList(prepared.headers.items()),
        body,
        upstream,
    )

    artifact = HmacSigner(credentials).sign(descriptor, timestamp)

    prepared.headers[DATE_HEADER] = artifact.date
    if artifact.authorization is not None:
        prepared.headers[AUTH_HEADER] = artifact.authorization

    artifact.request = prepared
    return artifact


class SigningSession:
    """
    HTTP session wrapper with automatic request signing capability.

    This class wraps a requests.Session and signs every request it sends.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize signing session.

        Args:
            credentials: Token and secret; requests go out unsigned when
                they are incomplete
            session: Optional existing requests session to wrap
        """
        self.session = session or requests.Session()
        self.credentials = credentials or Credentials()

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Build, sign and send a request.

        Accepts the keyword arguments of ``requests.Session.request``.
        """
        send_options = {
            'timeout': kwargs.pop('timeout', None),
            'allow_redirects': kwargs.pop('allow_redirects', True),
        }
        environment_options = {
            'proxies': kwargs.pop('proxies', None) or {},
            'stream': kwargs.pop('stream', None),
            'verify': kwargs.pop('verify', None),
            'cert': kwargs.pop('cert', None),
        }

        prepared = self.session.prepare_request(requests.Request(method.upper(), url, **kwargs))
        artifact = sign_prepared_request(prepared, self.credentials)
        if artifact.signed:
            logger.debug(f"Signed {prepared.method} request to {prepared.url}")
        else:
            logger.debug(f"Sending unsigned {prepared.method} request to {prepared.url}")

        settings = self.session.merge_environment_settings(prepared.url, **environment_options)
        send_options.update(settings)
        return self.session.send(prepared, **send_options)

    def get(self, url: str, **kwargs) -> requests.Response:
        """Make GET request."""
        return self.request('GET', url, **kwargs)

    def post(self, url: str, **kwargs) -> requests.Response:
        """Make POST request."""
        return self.request('POST', url, **kwargs)

    def put(self, url: str, **kwargs) -> requests.Response:
        """Make PUT request."""
        return self.request('PUT', url, **kwargs)

    def delete(self, url: str, **kwargs) -> requests.Response:
        """Make DELETE request."""
        return self.request('DELETE', url, **kwargs)

    def patch(self, url: str, **kwargs) -> requests.Response:
        """Make PATCH request."""
        return self.request('PATCH', url, **kwargs)

    def head(self, url: str, **kwargs) -> requests.Response:
        """Make HEAD request."""
        kwargs.setdefault('allow_redirects', False)
        return self.request('HEAD', url, **kwargs)

    def options(self, url: str, **kwargs) -> requests.Response:
        """Make OPTIONS request."""
        return self.request('OPTIONS', url, **kwargs)

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, *args):
        """Context manager exit."""
        self.close()


def create_signing_session(
    credentials: Optional[Credentials] = None,
    **session_kwargs
) -> SigningSession:
    """
    Create a new signing session.

    Args:
        credentials: Token and secret
        **session_kwargs: Attributes to set on the new requests.Session

    Returns:
        SigningSession: Configured signing session
    """
    session = requests.Session()

    # Apply session configuration
    for key, value in session_kwargs.items():
        if hasattr(session, key):
            setattr(session, key, value)

    return SigningSession(credentials=credentials, session=session)
