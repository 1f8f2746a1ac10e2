# =============================================================================
# ojterm: Online Judge Problem Statements in the Terminal
# =============================================================================
#
# ojterm renders the judge's browser-rendered markup (problem statements,
# compiler diagnostics) as terminal text, with ANSI styling and inline
# images drawn through Sixel, Kitty or iTerm graphics.
#
# Features:
#   - Whitespace handling that matches the browser (<pre> kept verbatim)
#   - Bold, italic, underline and highlight styling
#   - Inline images with automatic terminal protocol detection
#   - Broken images degrade to placeholders instead of errors
#   - XDG Base Directory compliant TOML config
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "ojterm"

# Main entry point - this is what gets called by the 'ojterm' command
from ojterm.app import main

__all__ = ["main", "__version__", "__app_name__"]
