from __future__ import annotations

import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..config import LensConfig
from ..errors import LensError


class BridgeClientError(LensError):
    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class BridgeUnavailableError(BridgeClientError):
    pass


class BridgeClient:
    """Agent-side counterpart of the bridge routes."""

    def __init__(self, base_url: str, timeout: float = 60.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: LensConfig) -> BridgeClient:
        return cls(config.bridge_url, timeout=config.client_timeout)

    def request(self, path: str, body: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"User-Agent": "lens-bridge-client/1.0", "Accept": "application/json"}
        data = None
        if body is not None:
            payload = {k: v for k, v in body.items() if v is not None}
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = Request(url, data=data, headers=headers, method="POST" if data is not None else "GET")
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except HTTPError as exc:
            raise BridgeClientError(_error_message(exc), exc.code) from exc
        except (TimeoutError, URLError, ConnectionError) as exc:
            reason = getattr(exc, "reason", exc)
            raise BridgeUnavailableError(f"Bridge unreachable at {self.base_url}: {reason}") from exc
        if not raw:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise BridgeClientError(f"Invalid JSON from bridge for {path}") from exc

    # Routes

    def health(self) -> dict[str, Any]:
        return self.request("health")

    def get_state(self) -> dict[str, Any]:
        return self.request("state")

    def navigate(self, url: str) -> dict[str, Any]:
        return self.request("navigate", {"url": url})

    def inspect(self, selector: str | None = None, x: float | None = None, y: float | None = None) -> Any:
        return self.request("inspect", {"selector": selector, "x": x, "y": y})

    def highlight(self, selector: str, color: str | None = None, duration: int | None = None) -> Any:
        return self.request("highlight", {"selector": selector, "color": color, "duration": duration})

    def clear_highlights(self) -> Any:
        return self.request("clear-highlights", {})

    def screenshot(self, selector: str | None = None) -> str:
        return self.request("screenshot", {"selector": selector})["image"]

    def console(self, level: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        return self.request("console", {"level": level, "limit": limit})["logs"]

    def reload(self) -> Any:
        return self.request("reload", {})

    def click(self, selector: str, options: dict[str, Any] | None = None) -> Any:
        return self.request("click", {"selector": selector, "options": options})

    def type(self, selector: str, text: str, options: dict[str, Any] | None = None) -> Any:
        return self.request("type", {"selector": selector, "text": text, "options": options})

    def wait_for(self, selector: str, options: dict[str, Any] | None = None) -> Any:
        return self.request("wait-for", {"selector": selector, "options": options})

    def fill(self, selector: str, value: str) -> Any:
        return self.request("fill", {"selector": selector, "value": value})

    def select_option(self, selector: str, values: str | list[str]) -> Any:
        return self.request("select-option", {"selector": selector, "values": values})

    def hover(self, selector: str) -> Any:
        return self.request("hover", {"selector": selector})

    def press_key(self, key: str) -> Any:
        return self.request("press-key", {"key": key})

    def drag_and_drop(self, source: str, target: str) -> Any:
        return self.request("drag-and-drop", {"source": source, "target": target})

    def scroll(self, options: dict[str, Any] | None = None) -> Any:
        return self.request("scroll", {"options": options})

    def wait_for_response(self, url_pattern: str, timeout: int | None = None) -> dict[str, Any]:
        return self.request("wait-for-response", {"urlPattern": url_pattern, "timeout": timeout})

    def get_text(self, selector: str) -> str:
        return self.request("get-text", {"selector": selector})["text"]

    def get_attribute(self, selector: str, name: str) -> str | None:
        return self.request("get-attribute", {"selector": selector, "name": name})["value"]

    def is_visible(self, selector: str) -> bool:
        return self.request("is-visible", {"selector": selector})["visible"]

    def is_enabled(self, selector: str) -> bool:
        return self.request("is-enabled", {"selector": selector})["enabled"]

    def is_checked(self, selector: str) -> bool:
        return self.request("is-checked", {"selector": selector})["checked"]

    def evaluate(self, script: str) -> Any:
        return self.request("evaluate", {"script": script})["result"]

    def accessibility_snapshot(self) -> Any:
        return self.request("accessibility-snapshot", {})["snapshot"]

    def go_back(self) -> Any:
        return self.request("go-back", {})

    def go_forward(self) -> Any:
        return self.request("go-forward", {})

    def set_dialog_handler(self, action: str) -> Any:
        return self.request("set-dialog-handler", {"action": action})


def _error_message(exc: HTTPError) -> str:
    try:
        payload = json.loads(exc.read().decode("utf-8"))
    except (ValueError, UnicodeDecodeError, OSError):
        return f"Bridge returned HTTP {exc.code}"
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return f"Bridge returned HTTP {exc.code}"
