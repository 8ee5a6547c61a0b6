"""Command-line interface for httpsend."""

import argparse
import sys
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from . import __version__
from .errors import DownloadPathError, HttpSendError, InvalidUrlError
from .http.client import RequestExecutor
from .http.protocols import HttpClient
from .logging_config import level_for_verbosity, setup_logging
from .models.config import ClientConfig, RequestConfig, expand_env_var
from .models.response import HttpResponse

# curl's exit code for HTTP errors with --fail
EXIT_HTTP_ERROR = 22


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="httpsend",
        description="Send one HTTP(S) request and print the response",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Simple GET, print status and headers too
  httpsend https://example.com -i

  # POST a JSON body with basic authentication
  httpsend https://example.com/api -X POST -u admin:s3cret \\
      -H "Content-Type: application/json" -d '{"name": "widget"}'

  # Only allow TLS 1.2, through an authenticated proxy
  httpsend https://legacy.example.com --tls-protocol TLSv1.2 \\
      --proxy proxy.internal:3128 --proxy-user bob:hunter2

  # Download into a directory (file name taken from the final URL)
  httpsend https://example.com/files/report.pdf -o ./downloads/

  # Load the request from a YAML file
  httpsend --config request.yaml
        """,
    )

    parser.add_argument(
        "url",
        nargs="?",
        help="URL to request",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--doctor",
        action="store_true",
        help="Run diagnostic checks",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        metavar="FILE",
        help="YAML file describing the request (command-line options override it)",
    )

    # Request
    request_group = parser.add_argument_group("request")
    request_group.add_argument(
        "--request",
        "-X",
        dest="method",
        metavar="METHOD",
        help="HTTP method (default: GET)",
    )
    request_group.add_argument(
        "--header",
        "-H",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Additional header (repeatable)",
    )
    request_group.add_argument(
        "--data",
        "-d",
        dest="body",
        metavar="BODY",
        help="Request body; @FILE reads it from a file",
    )
    request_group.add_argument(
        "--user-agent",
        "-A",
        type=str,
        help="Custom User-Agent string",
    )
    request_group.add_argument(
        "--timeout",
        "-m",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Connect and read timeout (default: 120)",
    )
    request_group.add_argument(
        "--user",
        "-u",
        metavar="USER:PASSWORD",
        help="Credentials for the server",
    )

    # Network settings
    network_group = parser.add_argument_group("network settings")
    network_group.add_argument(
        "--proxy",
        "-x",
        metavar="HOST:PORT",
        help="HTTP proxy to route the request through",
    )
    network_group.add_argument(
        "--proxy-user",
        metavar="USER:PASSWORD",
        help="Credentials for the proxy",
    )
    network_group.add_argument(
        "--tls-protocol",
        action="append",
        default=[],
        dest="tls_protocols",
        metavar="NAME",
        help="TLS protocol to enable, e.g. TLSv1.2 (repeatable; default: platform)",
    )
    network_group.add_argument(
        "--verify",
        action="store_true",
        help="Validate server certificates and host names",
    )
    network_group.add_argument(
        "--max-size",
        metavar="SIZE",
        help="Maximum response size kept in memory, e.g. 10mb (default: 50mb)",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write the body to this file, or into this directory",
    )
    output_group.add_argument(
        "--include",
        "-i",
        action="store_true",
        help="Print the status code and headers before the body",
    )
    output_group.add_argument(
        "--fail",
        "-f",
        action="store_true",
        help=f"Exit with code {EXIT_HTTP_ERROR} when the status is 400 or above",
    )
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress everything but the body",
    )
    output_group.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="FILE",
        help="Also write log messages to this file",
    )

    return parser


def parse_header(value: str) -> tuple[str, str]:
    """Split a "Name: value" header argument."""
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Invalid header {value!r}, expected 'Name: value'")
    return name.strip(), header_value.strip()


def parse_credentials(value: str) -> tuple[str, str]:
    """Split a "user:password" argument."""
    user, sep, password = value.partition(":")
    if not sep or not user:
        raise ValueError(f"Invalid credentials {user!r}, expected 'user:password'")
    return user, password


def parse_proxy(value: str) -> tuple[str, int]:
    """Split a "host:port" proxy argument; IPv6 hosts go in brackets."""
    value = value.strip()
    for prefix in ("http://", "https://"):
        if value.lower().startswith(prefix):
            value = value[len(prefix) :]
    value = value.rstrip("/")

    host, sep, port = value.rpartition(":")
    if not sep or "]" in port:
        raise ValueError(f"Invalid proxy {value!r}, expected 'host:port'")
    try:
        port_number = int(port)
    except ValueError as err:
        raise ValueError(f"Invalid proxy port {port!r}") from err
    return host.strip("[]"), port_number


def build_request(args: argparse.Namespace) -> RequestConfig:
    """
    Merge the YAML request file (if any) with the command-line options.

    Passwords from both sources have $VAR references expanded exactly once:
    the file when it is loaded, the options here.
    """
    data: dict[str, Any] = {}
    if args.config:
        data = RequestConfig.from_yaml_file(args.config).model_dump(exclude_none=True)

    if args.url:
        data["url"] = args.url
    if args.method:
        data["method"] = args.method
    if args.header:
        headers = dict(data.get("headers", {}))
        for value in args.header:
            name, header_value = parse_header(value)
            headers[name] = header_value
        data["headers"] = headers
    if args.body is not None:
        if args.body.startswith("@"):
            data["body"] = Path(args.body[1:]).read_text(encoding="utf-8")
        else:
            data["body"] = args.body
    if args.user_agent:
        data["user_agent"] = args.user_agent
    if args.timeout is not None:
        data["timeout"] = args.timeout
    if args.tls_protocols:
        data["tls_protocols"] = args.tls_protocols
    if args.output is not None:
        data["download_path"] = args.output

    auth = dict(data.get("auth", {}))
    if args.user:
        auth["username"], password = parse_credentials(args.user)
        auth["password"] = expand_env_var(password)
    if args.proxy_user:
        auth["proxy_username"], proxy_password = parse_credentials(args.proxy_user)
        auth["proxy_password"] = expand_env_var(proxy_password)
    if auth:
        data["auth"] = auth

    if args.proxy:
        host, port = parse_proxy(args.proxy)
        data["proxy"] = {"host": host, "port": port}

    if "url" not in data:
        raise ValueError("Please provide a URL to request")

    return RequestConfig.model_validate(data)


def print_response(response: HttpResponse, args: argparse.Namespace, console: Console, err_console: Console) -> None:
    if args.include:
        console.print(f"HTTP {response.status_code}", markup=False, highlight=False)
        console.print(response.header, markup=False, highlight=False, end="")
        console.print()

    if args.output is not None:
        if not args.quiet:
            err_console.print(f"[green]Saved:[/green] {escape(response.body)}")
        return

    console.print(response.body, markup=False, highlight=False, soft_wrap=True, end="")
    if response.body and not response.body.endswith("\n"):
        console.print()


def run_request(args: argparse.Namespace, client: Optional[HttpClient] = None) -> int:
    """
    Send the request described by the arguments.

    Args:
        args: Parsed command-line arguments
        client: Client performing the exchange (default: a RequestExecutor
            built from the TLS and size options)

    Returns:
        Process exit code
    """
    console = Console(soft_wrap=True, emoji=False)
    err_console = Console(stderr=True)

    setup_logging(level_for_verbosity(args.verbose, args.quiet), args.log_file, force=True)

    try:
        request = build_request(args)
        client_kwargs: dict[str, Any] = {"tls": {"verify_certificates": args.verify, "verify_hostname": args.verify}}
        if args.max_size:
            client_kwargs["max_content_length"] = args.max_size
        if client is None:
            client = RequestExecutor(ClientConfig(**client_kwargs))
    except (ValueError, OSError, ValidationError) as e:
        err_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return 1

    try:
        response = client.execute(request)
    except InvalidUrlError as e:
        err_console.print(f"[red]Invalid URL:[/red] {escape(str(e))}")
        return 1
    except DownloadPathError as e:
        err_console.print(f"[red]Cannot write download:[/red] {escape(str(e))}")
        return 1
    except HttpSendError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    print_response(response, args, console, err_console)

    if not args.quiet and not args.include:
        style = "green" if response.status_code < 400 else "red"
        err_console.print(f"[{style}]HTTP {response.status_code}[/{style}]")

    if args.fail and response.status_code >= 400:
        return EXIT_HTTP_ERROR
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.doctor:
        from .doctor import run_doctor

        return run_doctor(download_dir=args.output)

    return run_request(args)


if __name__ == "__main__":
    sys.exit(main())
