from __future__ import annotations

import pytest

from mcp_servers.lens.browser_handler import LensBridgeHandler
from mcp_servers.lens.config import LensConfig
from mcp_servers.lens.main import build_bridge, build_parser
from mcp_servers.lens.session_manager import SessionState


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parser_serve_overrides() -> None:
    args = build_parser().parse_args(["-v", "serve", "--port", "9444", "--target-url", "http://localhost:5173/"])
    assert args.command == "serve"
    assert args.verbose is True
    assert args.port == 9444
    assert args.cdp_port is None
    assert args.target_url == "http://localhost:5173/"


def test_build_bridge_wires_handler_without_connecting() -> None:
    server, manager = build_bridge(LensConfig(bridge_port=0, console_capacity=10))

    assert isinstance(server.handler, LensBridgeHandler)
    assert manager.state is SessionState.DISCONNECTED
    health = server.health()
    assert health["handlerReady"] is True
    assert health["connected"] is False
