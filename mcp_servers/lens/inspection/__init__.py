"""Element inspection pipeline: page scripts plus the typed parse boundary."""

from .pipeline import (
    ScriptRunner,
    build_last_script,
    build_point_script,
    build_selector_script,
    inspect_at_point,
    inspect_last,
    inspect_selector,
    parse_result,
)

__all__ = [
    "ScriptRunner",
    "build_last_script",
    "build_point_script",
    "build_selector_script",
    "inspect_at_point",
    "inspect_last",
    "inspect_selector",
    "parse_result",
]
