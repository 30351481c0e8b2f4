"""Result values returned by agent tool handlers, in MCP content form."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

TEXT = "text"
IMAGE = "image"


@dataclass(slots=True)
class ToolContent:
    """One text or image block of a tool result. Images carry base64 `data`."""

    type: str
    text: str | None = None
    data: str | None = None
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.type != IMAGE:
            return {"type": TEXT, "text": self.text}
        return {"type": IMAGE, "data": self.data, "mimeType": self.mime_type}


def _dumps(value: Any, *, pretty: bool = False) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2 if pretty else None)


@dataclass(slots=True)
class ToolResult:
    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> ToolResult:
        return cls([ToolContent(TEXT, text=text)])

    @classmethod
    def json(cls, data: Any) -> ToolResult:
        return cls.text(_dumps(data, pretty=True))

    @classmethod
    def image(cls, data_b64: str, mime_type: str = "image/png") -> ToolResult:
        # An empty capture is reported rather than sent as a broken image.
        if not data_b64:
            return cls.error("Screenshot data is empty")
        return cls([ToolContent(IMAGE, data=data_b64, mime_type=mime_type)])

    @classmethod
    def error(cls, message: str, *, tool: str | None = None, suggestion: str | None = None) -> ToolResult:
        payload: dict[str, Any] = {"ok": False, "error": message}
        payload.update({k: v for k, v in (("tool", tool), ("suggestion", suggestion)) if v})
        return cls([ToolContent(TEXT, text=_dumps(payload))], is_error=True)

    def to_content_list(self) -> list[dict[str, Any]]:
        return [block.to_dict() for block in self.content]
