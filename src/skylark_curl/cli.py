"""
Command-line interface for skylark-curl
Signs a curl request, runs the signing proxy, or manages secrets in the OS keyring
"""

import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from .config import MODES, SkylarkConfig, load_config
from .crypto.storage import get_default_store
from .curl import CurlDriver
from .exceptions import ConfigurationError, SkylarkError, StorageError, TransportError
from .proxy import run_proxy
from .signing.types import SigningError
from .version import __version__

logger = logging.getLogger(__name__)

PASSTHROUGH_SEPARATOR = '--'


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='skylark-curl',
        description='Sign HTTP requests for Skylark with SWIFTNAV-V1 HMAC-SHA-512',
        epilog='Arguments after "--" are passed to curl unchanged.'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'skylark-curl {__version__}'
    )
    parser.add_argument(
        '--mode',
        choices=MODES,
        help='What to do (default: curl)'
    )
    parser.add_argument(
        '--uri',
        help='Request URI in curl mode, upstream URI in proxy mode'
    )
    parser.add_argument('--token', help='Token id')
    parser.add_argument('--secret', help='Shared secret')
    parser.add_argument(
        '--time',
        help='Date header value, e.g. 2016-03-23T19:04:45+0000 (default: now)'
    )
    parser.add_argument(
        '--port',
        type=int,
        help='Port the proxy listens on'
    )
    parser.add_argument(
        '--bind',
        dest='bind_address',
        help='Address the proxy binds to (default: all interfaces)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        help='Upstream timeout in seconds for the proxy'
    )
    parser.add_argument(
        '--insecure',
        dest='verify_ssl',
        action='store_false',
        default=None,
        help='Do not verify the upstream TLS certificate in proxy mode'
    )
    parser.add_argument(
        '--curl',
        dest='curl_binary',
        help='curl executable to run (default: curl)'
    )
    parser.add_argument(
        '--keyring',
        dest='use_keyring',
        action='store_true',
        default=None,
        help='Look the secret up in the OS keyring by token'
    )
    parser.add_argument(
        '--config',
        help='JSON configuration file'
    )
    parser.add_argument(
        '--log-level',
        help='Log level (default: INFO)'
    )

    return parser


def split_passthrough(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split ``argv`` at the first ``--`` into own and curl arguments."""
    argv = list(argv)
    if PASSTHROUGH_SEPARATOR in argv:
        index = argv.index(PASSTHROUGH_SEPARATOR)
        return argv[:index], argv[index + 1:]
    return argv, []


def config_from_args(args: argparse.Namespace) -> SkylarkConfig:
    """Merge command-line values over environment, file and defaults."""
    overrides = {
        'mode': args.mode,
        'uri': args.uri,
        'token': args.token,
        'secret': args.secret,
        'time': args.time,
        'port': args.port,
        'bind_address': args.bind_address,
        'timeout': args.timeout,
        'verify_ssl': args.verify_ssl,
        'curl_binary': args.curl_binary,
        'use_keyring': args.use_keyring,
        'log_level': args.log_level,
    }
    return load_config(file_path=args.config, overrides=overrides)


def resolve_secret(config: SkylarkConfig) -> SkylarkConfig:
    """Fill in the secret from the keyring when asked to and not given."""
    if not config.use_keyring or not config.token or config.secret:
        return config

    secret = get_default_store().retrieve_secret(config.token)
    if secret is None:
        logger.warning(f"No secret stored for token {config.token}")
        return config
    return config.merged({'secret': secret})


def handle_curl_command(config: SkylarkConfig, passthrough: Sequence[str]) -> int:
    config = resolve_secret(config)
    driver = CurlDriver(
        curl_binary=config.curl_binary,
        echo=lambda command: print(command, file=sys.stderr)
    )
    return driver.execute(
        config.require_uri(),
        config.credentials(),
        config.time,
        passthrough,
    )


def handle_proxy_command(config: SkylarkConfig) -> int:
    proxy_config = config.to_proxy_config()
    try:
        run_proxy(proxy_config)
    except OSError as e:
        raise TransportError(
            f"Cannot listen on port {proxy_config.port}: {e}",
            "BIND_FAILED",
            details={"original_error": str(e)}
        )
    return 0


def handle_store_secret_command(config: SkylarkConfig) -> int:
    if not config.token or not config.secret:
        raise ConfigurationError("need --token and --secret", "MISSING_CREDENTIALS")

    metadata = get_default_store().store_secret(config.token, config.secret)
    print(f"Secret stored for token {metadata.token} ({metadata.storage_type})")
    return 0


def handle_delete_secret_command(config: SkylarkConfig) -> int:
    if not config.token:
        raise ConfigurationError("need --token", "MISSING_TOKEN")

    if get_default_store().delete_secret(config.token):
        print(f"Secret deleted for token {config.token}")
        return 0
    print(f"No secret stored for token {config.token}", file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    if argv is None:
        argv = sys.argv[1:]
    own, passthrough = split_passthrough(argv)

    parser = create_parser()
    args = parser.parse_args(own)

    try:
        config = config_from_args(args)
        config.logging_config.apply()

        if config.mode == 'curl':
            return handle_curl_command(config, passthrough)
        elif config.mode == 'proxy':
            return handle_proxy_command(config)
        elif config.mode == 'store-secret':
            return handle_store_secret_command(config)
        elif config.mode == 'delete-secret':
            return handle_delete_secret_command(config)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except TransportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except StorageError as e:
        print(f"Storage error: {e}", file=sys.stderr)
        return 1
    except SigningError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except SkylarkError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
