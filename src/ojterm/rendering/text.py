# =============================================================================
# Text Styling
# =============================================================================
# Whitespace normalization and per-tag terminal styling.
#
# Style rules run after an element's children have been rendered and joined,
# so they only ever see text (which may already contain ANSI escapes from
# nested elements or image escape sequences).
#
# ANSI codes come from rich's Style.render(), so the output is plain text
# that can be written straight to stdout.
# =============================================================================

import re
from typing import Callable

from rich.style import Style

# HTML whitespace only: non-breaking spaces (&nbsp;) are content and survive
_WHITESPACE_RE = re.compile(r"[ \t\n\r\f]+")

# Designated tags with special handling in the tree walker
IMAGE_TAG = "img"
LINE_BREAK_TAG = "br"
PREFORMATTED_TAG = "pre"


def normalize_whitespace(text: str) -> str:
    """
    Collapse every run of whitespace (space, tab, CR, LF, form feed) into a
    single space.

    Leading and trailing whitespace is collapsed too, but never removed.

    Example:
        >>> normalize_whitespace("  a \\n\\t b ")
        ' a b '
    """
    return _WHITESPACE_RE.sub(" ", text)


def _styled(style: Style) -> Callable[[str], str]:
    """Build a rule that wraps text in the ANSI codes for style."""
    def rule(text: str) -> str:
        return style.render(text)
    return rule


def _then_newline(rule: Callable[[str], str]) -> Callable[[str], str]:
    def block_rule(text: str) -> str:
        return rule(text) + "\n"
    return block_rule


_bold = _styled(Style(bold=True))
_bold_underline = _styled(Style(bold=True, underline=True))
_italic = _styled(Style(italic=True))
_highlight = _styled(Style(color="black", bgcolor="yellow"))

# Tag name -> transform applied to the joined children text
STYLE_RULES: dict[str, Callable[[str], str]] = {
    "b": _bold,
    "strong": _bold,
    "h1": _then_newline(_bold_underline),
    "h2": _then_newline(_bold_underline),
    "h3": _then_newline(_bold),
    "h4": _then_newline(_bold),
    "h5": _then_newline(_bold),
    "h6": _then_newline(_bold),
    "div": lambda text: text + "\n",
    "p": lambda text: f"\n{text}\n",
    "i": _italic,
    "em": _italic,
    "mark": _highlight,
}


def apply_style(tag: str, text: str) -> str:
    """Apply the style rule for tag. Unknown tags leave text unchanged."""
    rule = STYLE_RULES.get(tag.lower())
    if rule is None:
        return text
    return rule(text)
