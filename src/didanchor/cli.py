# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""didanchor command-line interface.

Commands:
  didanchor serve             Run the HTTP server
  didanchor parse <did>       Show the parts of a DID
  didanchor resolve <did>     Resolve a DID through the Redis lookup index
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from .core.config import get_config
from .core.exceptions import DIDAnchorException
from .core.logging import configure_logging
from .registry.did import CreationForm, parse_did
from .registry.document import DIDDocument

logger = logging.getLogger(__name__)


def output_result(data: Any) -> None:
    """Pretty-print a result as JSON."""
    print(json.dumps(data, indent=2, default=str))


def output_error(message: str) -> None:
    """Print error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP server."""
    import uvicorn

    config = get_config()
    host = args.host or config.host
    port = args.port or config.port

    logger.info(f"Starting didanchor HTTP server on {host}:{port}")
    uvicorn.run(
        "didanchor.server.app:app",
        host=host,
        port=port,
        log_level=config.log_level.lower(),
    )
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    """Parse a DID and print its parts."""
    try:
        parsed = parse_did(args.did, scheme=args.scheme or get_config().did_scheme)
    except DIDAnchorException as e:
        output_error(e.message)
        return 1

    if isinstance(parsed, CreationForm):
        output_result(
            {
                "form": "creation",
                "scheme": parsed.scheme,
                "topic": parsed.topic,
                "serialNumber": parsed.serial_number,
            }
        )
    else:
        output_result(
            {
                "form": "updated",
                "scheme": parsed.scheme,
                "topic": parsed.topic,
                "txid": parsed.txid,
                "outputIndex": parsed.output_index,
                "outpoint": parsed.outpoint,
            }
        )
    return 0


async def cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve a DID through the configured lookup index and overlay."""
    from .server.services import build_services

    # A fresh process starts with an empty in-memory index
    if get_config().lookup_index == "memory":
        output_error("resolve reads the shared lookup index and requires DIDANCHOR_LOOKUP_INDEX=redis")
        return 1

    try:
        registry = build_services().registry
        document = await registry.resolve(args.did)
    except DIDAnchorException as e:
        output_error(e.message)
        return 1

    if document is None:
        output_error(f"DID not found: {args.did}")
        return 1
    output_result(document.to_dict() if isinstance(document, DIDDocument) else document)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="didanchor",
        description="Ledger-anchored DID registry and certificate issuer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment variables:
  DIDANCHOR_OVERLAY_URL        Overlay service base URL
  DIDANCHOR_WALLET_URL         Wallet HTTP interface base URL
  DIDANCHOR_SERVER_PRIVATE_KEY Certifier private key (hex)
  DIDANCHOR_LOOKUP_INDEX       Lookup index backend: memory or redis
        """,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: DIDANCHOR_HOST)")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Listen port (default: DIDANCHOR_PORT)")

    parse_parser = subparsers.add_parser("parse", help="Show the parts of a DID")
    parse_parser.add_argument("did", help="DID to parse")
    parse_parser.add_argument("--scheme", default=None, help="Expected DID method (default: DIDANCHOR_DID_SCHEME)")

    resolve_parser = subparsers.add_parser(
        "resolve", help="Resolve a DID (requires DIDANCHOR_LOOKUP_INDEX=redis)"
    )
    resolve_parser.add_argument("did", help="Creation-form DID to resolve")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(level="DEBUG" if args.verbose else None)

    if args.command == "serve":
        return cmd_serve(args)
    if args.command == "parse":
        return cmd_parse(args)
    return asyncio.run(cmd_resolve(args))


if __name__ == "__main__":
    sys.exit(main())
