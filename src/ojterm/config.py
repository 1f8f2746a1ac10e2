# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating ojterm configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/ojterm/  (default: ~/.config/ojterm/)
#
# Files:
#   - config.toml: User preferences (graphics protocol, fetch timeout)
# =============================================================================

import os
import tomllib  # Built into Python 3.11+
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w  # For writing TOML (tomllib is read-only)

from ojterm.rendering.engine import DEFAULT_FETCH_TIMEOUT
from ojterm.rendering.protocol import GraphicsProtocol, UnknownProtocolError


# =============================================================================
# XDG Directory Management
# =============================================================================

# Application identifier used in all XDG paths
APP_NAME = "ojterm"


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for ojterm.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/ojterm/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass
class RenderingConfig:
    """
    Configuration for the markup rendering engine.

    Attributes:
        image_protocol: Terminal graphics protocol for inline images.
                        - "disabled": Show "[Image src ...]" placeholders
                        - "sixel": Widely supported, older protocol
                        - "kitty": Kitty / Ghostty
                        - "iterm": iTerm2 / VS Code
                        - "auto": Detect from $TERM and $TERM_PROGRAM
        fetch_timeout: Seconds to wait for an image download.
        base_url: Base URL for relative image sources ("" = none).
    """
    image_protocol: GraphicsProtocol = GraphicsProtocol.AUTO
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    base_url: str = ""


@dataclass
class Config:
    """
    Main configuration container for ojterm.

    Usage:
        >>> config = Config.load()
        >>> config.rendering.image_protocol
        <GraphicsProtocol.AUTO: 'auto'>
    """
    rendering: RenderingConfig = field(default_factory=RenderingConfig)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from the config file.

        If the config file doesn't exist, returns default configuration.

        Args:
            path: Config file to read (defaults to the XDG location).

        Raises:
            ConfigError: If the config file exists but is invalid.
        """
        config_path = path or cls.config_file_path()

        if not config_path.exists():
            # No config file yet - return defaults
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

        return cls._from_dict(data)

    def save(self, path: Path | None = None) -> Path:
        """
        Save configuration to the config file.

        Creates the config directory if it doesn't exist.

        Returns:
            The path written.

        Raises:
            ConfigError: If the file or its directory can't be written.
        """
        config_path = path or self.config_file_path()

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "wb") as f:
                tomli_w.dump(self._to_dict(), f)
        except OSError as e:
            raise ConfigError(f"Cannot write config file {config_path}: {e}") from e

        return config_path

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).
        """
        rendering = data.get("rendering", {})
        if not isinstance(rendering, dict):
            raise ConfigError(f"[rendering] must be a table, got {rendering!r}")

        try:
            protocol = GraphicsProtocol.from_name(
                str(rendering.get("image_protocol", "auto"))
            )
        except UnknownProtocolError as e:
            raise ConfigError(str(e)) from e

        timeout = rendering.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError(f"fetch_timeout must be a positive number, got {timeout!r}")

        base_url = rendering.get("base_url", "")
        if not isinstance(base_url, str):
            raise ConfigError(f"base_url must be a string, got {base_url!r}")

        return cls(
            rendering=RenderingConfig(
                image_protocol=protocol,
                fetch_timeout=float(timeout),
                base_url=base_url,
            ),
        )

    def _to_dict(self) -> dict[str, Any]:
        """
        Convert Config to a dictionary for TOML serialization.
        """
        return {
            "rendering": {
                "image_protocol": self.rendering.image_protocol.value,
                "fetch_timeout": self.rendering.fetch_timeout,
                "base_url": self.rendering.base_url,
            },
        }


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Raised when there's an error loading or parsing configuration."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """Print config paths for debugging."""
    print(f"Config:       {get_xdg_config_home()}")
    print(f"Config file:  {Config.config_file_path()}")
