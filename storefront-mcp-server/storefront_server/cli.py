"""Command-line interface for the Storefront MCP Server."""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

# Flags that override the STOREFRONT_* settings read by Storefront.from_env
ENV_FLAGS = {
    "catalog": "STOREFRONT_CATALOG_URL",
    "state_file": "STOREFRONT_STATE_FILE",
    "receipts_dir": "STOREFRONT_RECEIPTS_DIR",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storefront-mcp-server",
        description="Storefront MCP Server - Browse products, manage a cart, and check out",
    )
    parser.add_argument(
        "--mode",
        choices=["stdio", "http"],
        default="stdio",
        help="Server mode: stdio (for MCP clients) or http (REST API)",
    )
    parser.add_argument("--host", default="0.0.0.0", help="HTTP host (http mode only)")
    parser.add_argument("--port", type=int, default=8000, help="HTTP port (http mode only)")

    store = parser.add_argument_group("storefront")
    store.add_argument("--catalog", help="Product list URL or file (default: products.json)")
    store.add_argument("--state-file", help="Cart and sales state file (default: ~/.storefront_state.json)")
    store.add_argument("--receipts-dir", help="Directory for exported receipts (default: ~/storefront_receipts)")
    store.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return parser


def apply_overrides(args: argparse.Namespace) -> None:
    """Export the given storefront flags so the server picks them up."""
    for attr, env_var in ENV_FLAGS.items():
        value = getattr(args, attr)
        if value:
            os.environ[env_var] = value


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    apply_overrides(args)
    # stdout carries the MCP stream, so logs go to stderr
    logging.basicConfig(level=args.log_level, stream=sys.stderr)

    if args.mode == "stdio":
        from .server import main as server_main

        try:
            asyncio.run(server_main())
        except KeyboardInterrupt:
            print("\nShutting down...", file=sys.stderr)
    else:
        from .http_server import run_http_server

        print(f"Starting Storefront HTTP Server on {args.host}:{args.port}", file=sys.stderr)
        run_http_server(host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
