from __future__ import annotations

import re

from .errors import SelectorError, ValidationError

# jQuery / Playwright-only pseudo selectors that querySelector rejects.
_NON_CSS_PSEUDOS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r":contains\(", re.I), "Use browser_get_text or an attribute selector instead of :contains()"),
    (re.compile(r":has-text\(", re.I), "Use browser_get_text or an attribute selector instead of :has-text()"),
    (re.compile(r":text\(", re.I), "Use browser_get_text or an attribute selector instead of :text()"),
    (re.compile(r":eq\(", re.I), "Use :nth-of-type(n) or :nth-child(n) instead of :eq()"),
    (re.compile(r":gt\(|:lt\(", re.I), "Use :nth-child() ranges instead of :gt()/:lt()"),
    (re.compile(r":(?:first|last)(?![-\w])", re.I), "Use :first-of-type / :last-of-type instead of :first/:last"),
    (re.compile(r":(?:visible|hidden)(?![-\w])", re.I), "Visibility is not a CSS state; use browser_is_visible"),
)


def validate_selector(selector: object, *, field: str = "selector") -> str:
    """Return the trimmed selector or raise.

    Type and emptiness problems are validation errors; non-CSS syntax is a
    SelectorError so the session manager never retries it.
    """
    if selector is None:
        raise ValidationError(f"Missing required parameter: {field}", field=field)
    if not isinstance(selector, str):
        raise ValidationError(
            f"Invalid parameter {field}: expected string, got {type(selector).__name__}",
            field=field,
        )
    value = selector.strip()
    if not value:
        raise ValidationError(f"Parameter {field} cannot be empty", field=field)
    bare = _strip_quoted(value)
    for pattern, hint in _NON_CSS_PSEUDOS:
        if pattern.search(bare):
            raise SelectorError(value, "jQuery-style pseudo-selectors are not valid CSS", suggestion=hint)
    if bare.count("(") != bare.count(")") or bare.count("[") != bare.count("]"):
        raise SelectorError(value, "unbalanced brackets")
    return value


def _strip_quoted(selector: str) -> str:
    # Attribute values may legitimately contain ":first" etc.
    return re.sub(r"'[^']*'|\"[^\"]*\"", "''", selector)
