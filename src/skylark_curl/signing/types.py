"""
Type definitions for request signing functionality

This module provides the data classes that flow through the signing pipeline:
the request descriptor that gets canonicalized, the credentials used to sign
it, and the artifact handed back to the client driver or proxy.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from dataclasses import dataclass, field

from .constants import DEFAULT_METHOD


HeaderPair = Tuple[str, str]
QueryPair = Tuple[str, str]
RequestBody = Union[str, bytes]


class SigningError(Exception):
    """
    Error class for signing operations

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Optional additional error details
    """

    def __init__(
        self,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (code: {self.code}, details: {self.details})"
        return f"{self.message} (code: {self.code})"

    def __repr__(self) -> str:
        return f"SigningError(message='{self.message}', code='{self.code}', details={self.details})"


class SigningErrorCodes:
    """Standard error codes for signing operations"""

    # Request errors
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_URL = "INVALID_URL"
    INVALID_HEADERS = "INVALID_HEADERS"
    MISSING_DATE_HEADER = "MISSING_DATE_HEADER"

    # Validation errors
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # Signing errors
    SIGNING_FAILED = "SIGNING_FAILED"
    CANONICAL_MESSAGE_FAILED = "CANONICAL_MESSAGE_FAILED"


def _copy_pairs(pairs: Optional[Iterable[Tuple[str, str]]], what: str) -> List[Tuple[str, str]]:
    if pairs is None:
        return []
    copied = []
    for pair in pairs:
        try:
            name, value = pair
        except (TypeError, ValueError):
            raise SigningError(
                f"{what} entries must be (name, value) pairs",
                SigningErrorCodes.INVALID_REQUEST,
                {"entry": repr(pair)}
            )
        copied.append((str(name), "" if value is None else str(value)))
    return copied


@dataclass
class RequestDescriptor:
    """
    The signable parts of one HTTP request

    Attributes:
        method: HTTP method, upper-cased on construction
        path: Path exactly as it appears on the request line
        host: Destination hostname (no scheme, no port)
        port: Destination port
        query: (name, value) pairs in the order they appeared
        headers: (name, value) pairs in the order they were supplied
        body: Raw request body
    """
    host: str
    port: int
    method: str = DEFAULT_METHOD
    path: str = "/"
    query: List[QueryPair] = field(default_factory=list)
    headers: List[HeaderPair] = field(default_factory=list)
    body: RequestBody = ""

    def __post_init__(self):
        """Validate and take private copies of the pair lists"""
        if not self.host or not isinstance(self.host, str):
            raise SigningError(
                "Request host cannot be empty",
                SigningErrorCodes.INVALID_REQUEST,
                {"host": self.host}
            )

        if isinstance(self.port, bool) or not isinstance(self.port, int):
            try:
                self.port = int(str(self.port), 10)
            except ValueError:
                raise SigningError(
                    f"Request port must be numeric: {self.port!r}",
                    SigningErrorCodes.INVALID_REQUEST,
                    {"port": self.port}
                )

        if not 0 < self.port < 65536:
            raise SigningError(
                f"Request port out of range: {self.port}",
                SigningErrorCodes.INVALID_REQUEST,
                {"port": self.port}
            )

        self.method = (self.method or DEFAULT_METHOD).upper()
        self.path = self.path or "/"

        if self.body is None:
            self.body = ""
        elif not isinstance(self.body, (str, bytes)):
            raise SigningError(
                f"Body must be string or bytes, got {type(self.body)}",
                SigningErrorCodes.INVALID_REQUEST,
                {"body_type": str(type(self.body))}
            )

        self.query = _copy_pairs(self.query, "Query")
        self.headers = _copy_pairs(self.headers, "Header")

    def body_bytes(self) -> bytes:
        """Body as the bytes that go on the wire"""
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode('utf-8')


@dataclass
class Credentials:
    """
    Token identifier and shared secret

    Signing is skipped, not failed, when either part is missing.
    """
    token: Optional[str] = None
    secret: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.token) and bool(self.secret)

    def __repr__(self) -> str:
        secret = "***" if self.secret else None
        return f"Credentials(token={self.token!r}, secret={secret!r})"


@dataclass
class SignedArtifact:
    """
    Result of signing one request

    Attributes:
        date: Value of the date header that was signed
        authorization: Authorization header value, None for unsigned requests
        canonical_request: Bytes that were HMACed, None for unsigned requests
        request: The request ready to forward (mode specific)
    """
    date: str
    authorization: Optional[str] = None
    canonical_request: Optional[bytes] = None
    request: Any = None

    @property
    def signed(self) -> bool:
        return self.authorization is not None


@dataclass
class VerificationResult:
    """Outcome of checking an Authorization header against a request"""
    valid: bool
    token: Optional[str] = None
    reason: Optional[str] = None
