# =============================================================================
# Terminal Graphics Protocols
# =============================================================================
# Which escape-sequence family inline images are drawn with.
#
# Supported protocols:
#   - Sixel: Bitmap graphics protocol, supported by xterm, mlterm, foot, etc.
#   - Kitty: Chunked truecolor transfer, supported by Kitty and Ghostty
#   - iTerm: Inline file transfer, supported by iTerm2 and VS Code
#   - Disabled: Images become "[Image src ...]" placeholders
#   - Auto: Resolved from $TERM / $TERM_PROGRAM before any image is drawn
# =============================================================================

import logging
import os
from enum import Enum
from typing import Mapping

logger = logging.getLogger(__name__)


class GraphicsProtocol(Enum):
    """Terminal graphics protocols. Values are the names stored in config."""
    DISABLED = "disabled"   # Text placeholders only
    SIXEL = "sixel"         # Sixel bitmap graphics
    KITTY = "kitty"         # Kitty graphics protocol (truecolor)
    ITERM = "iterm"         # iTerm2 inline images (PNG)
    AUTO = "auto"           # Detect from the terminal environment

    @classmethod
    def from_name(cls, value: str) -> "GraphicsProtocol":
        """
        Parse a user-supplied protocol name.

        Accepts the long names plus the short aliases shown in the
        command-line help (case insensitive).

        Raises:
            UnknownProtocolError: If the name is not recognized.
        """
        try:
            return _ALIASES[value.strip().lower()]
        except KeyError:
            raise UnknownProtocolError(
                f"Invalid value for graphics protocol: {value!r}"
            ) from None


_ALIASES = {
    "n": GraphicsProtocol.DISABLED,
    "0": GraphicsProtocol.DISABLED,
    "none": GraphicsProtocol.DISABLED,
    "disabled": GraphicsProtocol.DISABLED,
    "s": GraphicsProtocol.SIXEL,
    "sixel": GraphicsProtocol.SIXEL,
    "k": GraphicsProtocol.KITTY,
    "kitty": GraphicsProtocol.KITTY,
    "i": GraphicsProtocol.ITERM,
    "iterm": GraphicsProtocol.ITERM,
    "a": GraphicsProtocol.AUTO,
    "auto": GraphicsProtocol.AUTO,
}

# $TERM_PROGRAM values we know how to draw images for
TERM_PROGRAMS = {
    "ghostty": GraphicsProtocol.KITTY,
    "vscode": GraphicsProtocol.ITERM,
    "iTerm.app": GraphicsProtocol.ITERM,
}


def resolve_protocol(
    requested: GraphicsProtocol,
    term: str | None,
    term_program: str | None,
) -> GraphicsProtocol:
    """
    Resolve AUTO to a concrete protocol.

    Concrete protocols pass through unchanged. For AUTO:
        1. $TERM containing "kitty" means the Kitty protocol.
        2. No $TERM_PROGRAM means images are disabled.
        3. Otherwise $TERM_PROGRAM is looked up in TERM_PROGRAMS;
           unknown programs get images disabled.

    Args:
        requested: Protocol from config or the command line.
        term: Value of $TERM (None if unset).
        term_program: Value of $TERM_PROGRAM (None if unset).
    """
    if requested is not GraphicsProtocol.AUTO:
        return requested

    if term and "kitty" in term:
        return GraphicsProtocol.KITTY

    if term_program is None:
        return GraphicsProtocol.DISABLED

    return TERM_PROGRAMS.get(term_program, GraphicsProtocol.DISABLED)


def detect_protocol(
    requested: GraphicsProtocol,
    environ: Mapping[str, str] | None = None,
) -> GraphicsProtocol:
    """
    Resolve AUTO using the process environment.

    The environment is only consulted when the request is AUTO.

    Args:
        requested: Protocol to resolve.
        environ: Environment mapping (defaults to os.environ).
    """
    if requested is not GraphicsProtocol.AUTO:
        return requested

    if environ is None:
        environ = os.environ

    resolved = resolve_protocol(
        requested,
        environ.get("TERM"),
        environ.get("TERM_PROGRAM"),
    )
    logger.debug(f"Auto-detected graphics protocol: {resolved.value}")
    return resolved


# =============================================================================
# Exceptions
# =============================================================================

class UnknownProtocolError(ValueError):
    """Raised when a graphics protocol name cannot be parsed."""
    pass
