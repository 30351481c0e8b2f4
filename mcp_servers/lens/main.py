"""
Command-line entry point.

    lens-bridge serve   browser side: bridge HTTP server on top of a CDP session
    lens-bridge mcp     agent side: stdio MCP server that calls the bridge
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from .agent.server import McpServer, serve_stdio
from .bridge.client import BridgeClient
from .bridge.server import BridgeServer
from .browser_handler import LensBridgeHandler
from .cdp_driver import CdpTransport
from .config import LensConfig
from .console import ConsoleBuffer
from .session_manager import SessionManager

logger = logging.getLogger("mcp.lens")


def build_bridge(config: LensConfig) -> tuple[BridgeServer, SessionManager]:
    console = ConsoleBuffer(config.console_capacity)
    manager = SessionManager(CdpTransport(config, console), config)
    server = BridgeServer(config.bridge_host, config.bridge_port, max_body_bytes=config.max_body_bytes)
    server.set_handler(LensBridgeHandler(manager, console, config))
    server.bind_health_probe(manager.is_connected)
    return server, manager


def _serve(config: LensConfig) -> int:
    server, manager = build_bridge(config)
    logger.info(
        "bridge=%s cdp=%s target=%s",
        config.bridge_url,
        config.cdp_url,
        config.target_url or "(first page)",
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("shutting down")
    finally:
        manager.disconnect()
    return 0


def _mcp(config: LensConfig) -> int:
    serve_stdio(McpServer(config, BridgeClient.from_config(config)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lens-bridge", description="Localhost bridge between an agent and a live page")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the bridge HTTP server against a remote-debugging browser")
    serve.add_argument("--port", type=int, help="bridge port (LENS_BRIDGE_PORT, default 9333)")
    serve.add_argument("--cdp-port", type=int, help="browser remote-debugging port (LENS_CDP_PORT, default 9222)")
    serve.add_argument("--target-url", help="URL of the page to attach (LENS_TARGET_URL)")

    mcp = sub.add_parser("mcp", help="run the agent-side MCP server over stdio")
    mcp.add_argument("--bridge-port", type=int, help="bridge port to call (LENS_BRIDGE_PORT)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    # stdout carries MCP frames; logs go to stderr.
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    config = LensConfig.from_env()
    if args.command == "serve":
        if args.port is not None:
            config.bridge_port = args.port
        if args.cdp_port is not None:
            config.cdp_port = args.cdp_port
        if args.target_url:
            config.target_url = args.target_url
        return _serve(config)
    if args.bridge_port is not None:
        config.bridge_port = args.bridge_port
    return _mcp(config)


if __name__ == "__main__":
    sys.exit(main())
