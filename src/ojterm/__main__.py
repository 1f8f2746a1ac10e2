# =============================================================================
# ojterm Entry Point for `python -m ojterm`
# =============================================================================
# This module allows ojterm to be run as a Python module:
#
#   python -m ojterm render statement.html
#
# This is equivalent to running the 'ojterm' command after installation.
# =============================================================================

import sys

from ojterm.app import main

if __name__ == "__main__":
    sys.exit(main())
