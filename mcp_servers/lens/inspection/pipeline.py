from __future__ import annotations

import json
import math
from collections.abc import Callable
from typing import Any

from ..errors import SelectorError, ValidationError
from ..models import ElementInfo
from .scripts import BASE_PRELUDE, EXTENDED_PRELUDE, LAST_BODY_JS, POINT_BODY_JS, SELECTOR_BODY_JS

ScriptRunner = Callable[[str], Any]


def _wrap(prelude: str, bindings: str, body: str) -> str:
    return "(() => {\n" + prelude + bindings + body + "})()"


def build_selector_script(selector: str) -> str:
    bindings = f"\n  const selector = {json.dumps(selector)};\n"
    return _wrap(BASE_PRELUDE, bindings, SELECTOR_BODY_JS)


def build_point_script(x: float, y: float) -> str:
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValidationError("Inspection point must be finite")
    bindings = f"\n  const x = {json.dumps(float(x))};\n  const y = {json.dumps(float(y))};\n"
    return _wrap(EXTENDED_PRELUDE, bindings, POINT_BODY_JS)


def build_last_script() -> str:
    return _wrap(EXTENDED_PRELUDE, "\n", LAST_BODY_JS)


def parse_result(raw: Any, *, selector: str | None = None) -> ElementInfo | None:
    """Validate page-script output and build an ElementInfo."""
    if raw is None:
        return None
    if isinstance(raw, dict) and raw.get("__lensError") == "invalid_selector":
        raise SelectorError(selector or "", str(raw.get("message") or "querySelector rejected the selector"))
    return ElementInfo.from_dict(raw)


def inspect_selector(run: ScriptRunner, selector: str) -> ElementInfo | None:
    return parse_result(run(build_selector_script(selector)), selector=selector)


def inspect_at_point(run: ScriptRunner, x: float, y: float) -> ElementInfo | None:
    return parse_result(run(build_point_script(x, y)))


def inspect_last(run: ScriptRunner) -> ElementInfo | None:
    return parse_result(run(build_last_script()))
