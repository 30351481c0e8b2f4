from __future__ import annotations

import http.server
import json
import os
import socketserver
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import quote
from urllib.request import Request, urlopen

import pytest

from mcp_servers.lens.browser_handler import LensBridgeHandler
from mcp_servers.lens.cdp_driver import CdpTransport
from mcp_servers.lens.config import LensConfig
from mcp_servers.lens.console import ConsoleBuffer
from mcp_servers.lens.session_manager import SessionManager

pytestmark = pytest.mark.skipif(
    os.environ.get("RUN_BROWSER_INTEGRATION") != "1",
    reason="Requires Chrome/Chromium with --remote-debugging-port. Set RUN_BROWSER_INTEGRATION=1 to enable.",
)

DIALOG_PAGE = """<!doctype html>
<html><body style="margin:0">
  <main><h1>Settings</h1></main>
  <div id="confirm" role="dialog" aria-label="Confirm"
       style="position:fixed;left:20px;top:20px;width:300px;height:160px;background:#fff">
    <p>Discard changes?</p>
    <button id="discard" style="position:absolute;left:20px;top:100px;width:120px;height:40px">Discard</button>
  </div>
</body></html>
"""


@contextmanager
def _dialog_site() -> Iterator[str]:
    with tempfile.TemporaryDirectory() as tmp_dir:
        tmp_path = Path(tmp_dir)
        (tmp_path / "index.html").write_text(DIALOG_PAGE, encoding="utf-8")

        class _Handler(http.server.SimpleHTTPRequestHandler):
            def __init__(self, *args, **kwargs):  # noqa: ANN001
                super().__init__(*args, directory=str(tmp_path), **kwargs)

            def log_message(self, format, *args):  # noqa: ANN001
                return

        socketserver.TCPServer.allow_reuse_address = True
        with socketserver.TCPServer(("127.0.0.1", 0), _Handler) as httpd:
            port = httpd.server_address[1]
            thread = threading.Thread(target=httpd.serve_forever, daemon=True)
            thread.start()
            try:
                yield f"http://127.0.0.1:{port}/index.html"
            finally:
                httpd.shutdown()
                thread.join(timeout=1.0)


@contextmanager
def _open_tab(config: LensConfig, url: str) -> Iterator[str]:
    with urlopen(Request(f"{config.cdp_url}/json/new?{quote(url, safe=':/')}", method="PUT"), timeout=5) as resp:
        target_id = json.loads(resp.read().decode())["id"]
    try:
        yield target_id
    finally:
        with urlopen(f"{config.cdp_url}/json/close/{target_id}", timeout=5):
            pass


def test_point_inside_dialog_is_classified() -> None:
    with _dialog_site() as url:
        config = LensConfig.from_env()
        config.target_url = url
        console = ConsoleBuffer(config.console_capacity)
        manager = SessionManager(CdpTransport(config, console), config)
        handler = LensBridgeHandler(manager, console, config)
        with _open_tab(config, url):
            try:
                handler.navigate(url)
                first = handler.inspect_element_at_point(60, 140)
                second = handler.inspect_element_at_point(60, 140)
            finally:
                manager.disconnect()

    assert first is not None
    assert first.tag_name == "button"
    assert first.overlay is not None
    assert first.overlay.type == "dialog"
    assert first.overlay.container == "#confirm"
    assert first == second
