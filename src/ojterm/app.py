# =============================================================================
# ojterm Command Line
# =============================================================================
# Entry point for the `ojterm` command.
#
# Commands:
#   - render: Render a judge markup fragment (file or stdin) to the terminal
#   - config: Show or change the saved graphics protocol
#
# Configuration errors (unknown protocol names, broken config files) are
# reported on stderr with exit code 1. Image failures never are: they show
# up as placeholders inside the rendered text.
# =============================================================================

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from ojterm import __app_name__, __version__
from ojterm.config import Config, ConfigError, print_paths
from ojterm.rendering import GraphicsProtocol, RenderEngine, UnknownProtocolError

logger = logging.getLogger(__name__)

PROTOCOL_HELP = (
    "Graphics protocol for images: n/none/disabled, s/sixel, k/kitty, "
    "i/iterm, a/auto"
)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ojterm command."""
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="Render online judge problem statements in the terminal",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--paths",
        action="store_true",
        help="Print configuration paths and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    commands = parser.add_subparsers(dest="command")

    render = commands.add_parser("render", help="Render a markup fragment")
    render.add_argument(
        "file",
        nargs="?",
        default="-",
        help="HTML fragment to render ('-' or omitted for stdin)",
    )
    render.add_argument("-g", "--graphics", help=PROTOCOL_HELP)
    render.add_argument("--base-url", help="Base URL for relative image sources")

    config = commands.add_parser("config", help="Show or change configuration")
    config.add_argument("-g", "--graphics", help=PROTOCOL_HELP)
    config.add_argument(
        "--show",
        action="store_true",
        help="Print the current configuration",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    return build_parser().parse_args(argv)


def read_fragment(source: str) -> str:
    """Read markup from a file path, or stdin for '-'."""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def run_render(args: argparse.Namespace, config: Config) -> int:
    """Render the fragment named on the command line to stdout."""
    protocol = config.rendering.image_protocol
    if args.graphics:
        protocol = GraphicsProtocol.from_name(args.graphics)

    try:
        fragment = read_fragment(args.file)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    engine = RenderEngine(
        protocol,
        timeout=config.rendering.fetch_timeout,
        base_url=args.base_url or config.rendering.base_url or None,
    )
    sys.stdout.write(asyncio.run(engine.render(fragment)))
    sys.stdout.flush()
    return 0


def run_config(args: argparse.Namespace, config: Config) -> int:
    """Persist a new graphics protocol and/or print the configuration."""
    if args.graphics:
        config.rendering.image_protocol = GraphicsProtocol.from_name(args.graphics)
        path = config.save(args.config)
        logger.info(f"Saved configuration to {path}")

    if args.show or not args.graphics:
        print(f"image_protocol = {config.rendering.image_protocol.value}")
        print(f"fetch_timeout  = {config.rendering.fetch_timeout}")
        print(f"base_url       = {config.rendering.base_url}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for ojterm.

    This function:
        1. Parses command-line arguments
        2. Handles special commands (--paths, --version)
        3. Loads configuration
        4. Runs the requested command

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # Handle --paths flag
    if args.paths:
        print_paths()
        return 0

    try:
        config = Config.load(args.config)
        if args.command == "render":
            return run_render(args, config)
        if args.command == "config":
            return run_config(args, config)
    except (ConfigError, UnknownProtocolError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    build_parser().print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
