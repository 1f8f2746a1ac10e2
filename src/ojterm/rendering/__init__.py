# =============================================================================
# Rendering Module
# =============================================================================
# Mirrors the judge's browser-rendered markup into the terminal.
#
# Problem statements and compiler diagnostics arrive as HTML fragments. This
# module turns them into plain terminal text:
#   - Whitespace is collapsed, except inside <pre>
#   - Headings, bold, italic and <mark> get ANSI styling
#   - <p>, <div>, <br> and headings become line breaks
#   - <img> is drawn inline with Sixel, Kitty or iTerm graphics
#
# Terminal graphics support:
#   - Sixel: Widely supported, works in xterm, mlterm, foot, etc.
#   - Kitty: Kitty and Ghostty
#   - iTerm: iTerm2 and VS Code's terminal
#   - Auto: Picked from $TERM / $TERM_PROGRAM
#
# The rendering pipeline:
#   1. Parse the fragment (BeautifulSoup)
#   2. Walk the tree, styling each element after its children
#   3. Fetch, decode and encode each image where it appears
#   4. Substitute "[Image src ...]" placeholders for images that fail
# =============================================================================

from ojterm.rendering.engine import RenderContext, RenderEngine, render
from ojterm.rendering.images import DecodedImage, ImageError
from ojterm.rendering.protocol import (
    GraphicsProtocol,
    UnknownProtocolError,
    detect_protocol,
    resolve_protocol,
)
from ojterm.rendering.text import normalize_whitespace

__all__ = [
    "DecodedImage",
    "GraphicsProtocol",
    "ImageError",
    "RenderContext",
    "RenderEngine",
    "UnknownProtocolError",
    "detect_protocol",
    "normalize_whitespace",
    "render",
    "resolve_protocol",
]
