"""
curl driver for skylark-curl

Signs a single request described by a URI and curl arguments, then runs curl
with the date and Authorization headers added. The process that runs curl sits
behind CommandRunner so the signing path can be exercised without spawning
anything.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .config import SkylarkConfig
from .exceptions import TransportError
from .signing.constants import AUTH_HEADER, DATE_HEADER
from .signing.extractors import HEADER_FLAG, descriptor_from_curl_args
from .signing.signer import HmacSigner
from .signing.types import Credentials, SignedArtifact
from .signing.utils import parse_header_line, parse_url

logger = logging.getLogger(__name__)

DEFAULT_CURL_BINARY = "curl"


@dataclass
class CurlInvocation:
    """Argument vector for one curl run"""
    argv: List[str] = field(default_factory=list)

    @property
    def command(self) -> str:
        """Shell-quoted command line, for display"""
        return " ".join(shlex.quote(arg) for arg in self.argv)


class CommandRunner:
    """Runs an external command and reports its exit code."""

    def run(self, argv: Sequence[str]) -> int:
        raise NotImplementedError


class SubprocessRunner(CommandRunner):
    """Runs commands with subprocess, sharing this process's stdout and stderr."""

    def run(self, argv: Sequence[str]) -> int:
        try:
            completed = subprocess.run(list(argv))
        except FileNotFoundError as e:
            raise TransportError(
                f"Command not found: {argv[0]}",
                "COMMAND_NOT_FOUND",
                exit_code=127,
                details={"original_error": str(e)}
            )
        except OSError as e:
            raise TransportError(
                f"Failed to run {argv[0]}: {e}",
                "COMMAND_FAILED",
                exit_code=126,
                details={"original_error": str(e)}
            )
        return completed.returncode


def drop_header_args(args: Sequence[str], name: str) -> List[str]:
    """Remove every ``-H '<name>: ...'`` pair from ``args``."""
    kept: List[str] = []
    index = 0
    while index < len(args):
        arg = args[index]
        if arg == HEADER_FLAG and index + 1 < len(args):
            parsed = parse_header_line(args[index + 1])
            if parsed is not None and parsed[0].lower() == name.lower():
                index += 2
                continue
        kept.append(arg)
        index += 1
    return kept


class CurlDriver:
    """
    Signs and runs one curl request

    Attributes:
        runner: Executes the final argument vector
        curl_binary: Name or path of the curl executable
        echo: Receives the assembled command line before it runs
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        curl_binary: str = DEFAULT_CURL_BINARY,
        echo: Optional[Callable[[str], None]] = None
    ):
        self.runner = runner or SubprocessRunner()
        self.curl_binary = curl_binary
        self.echo = echo or logger.info

    def prepare(
        self,
        uri: str,
        credentials: Optional[Credentials] = None,
        timestamp: Optional[str] = None,
        passthrough: Sequence[str] = ()
    ) -> SignedArtifact:
        """
        Sign the request and build the curl invocation.

        Args:
            uri: Target URI
            credentials: Token and secret; the request is left unsigned when
                either is missing
            timestamp: Date header value (defaults to now)
            passthrough: curl arguments; ``-H``, ``-X`` and ``--data`` shape
                the signed request

        Returns:
            SignedArtifact: Signing result whose ``request`` is a CurlInvocation

        Raises:
            SigningError: If the URI or timestamp is malformed
        """
        target = parse_url(uri)
        args = [uri] + drop_header_args(passthrough, DATE_HEADER)

        descriptor = descriptor_from_curl_args(target, args)
        artifact = HmacSigner(credentials).sign(descriptor, timestamp)

        args += [HEADER_FLAG, f"{DATE_HEADER}: {artifact.date}"]
        if artifact.authorization is not None:
            args += [HEADER_FLAG, f"{AUTH_HEADER}: {artifact.authorization}"]
        else:
            logger.info("No token and secret given, not signing")

        artifact.request = CurlInvocation([self.curl_binary] + args)
        return artifact

    def execute(
        self,
        uri: str,
        credentials: Optional[Credentials] = None,
        timestamp: Optional[str] = None,
        passthrough: Sequence[str] = ()
    ) -> int:
        """
        Sign the request, echo the command and run it.

        Returns:
            int: curl's exit code
        """
        artifact = self.prepare(uri, credentials, timestamp, passthrough)
        invocation = artifact.request
        self.echo(invocation.command)
        return self.runner.run(invocation.argv)


def prepare_curl(config: SkylarkConfig, passthrough: Sequence[str] = ()) -> SignedArtifact:
    """
    Prepare a signed curl invocation from configuration.

    Raises:
        ConfigurationError: If no URI is configured
    """
    driver = CurlDriver(curl_binary=config.curl_binary)
    return driver.prepare(
        config.require_uri(),
        config.credentials(),
        config.time,
        passthrough,
    )
