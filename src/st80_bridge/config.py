"""
Bridge Configuration
====================

Configuration for the display/input bridge. Values can come from:
- Default values (defined here)
- Explicit keyword arguments
- Environment variables (BridgeConfig.from_env)

The defaults reproduce the classic Smalltalk-80 setup: a 640x480 display,
black 16x16 cursors and the German keyboard remapping that makes
national letters reach the bracket and brace positions of the VM.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from typing import Tuple
import os

from st80_bridge.errors import ConfigError


# Locales with a remap table in st80_bridge.input.keyboard
SUPPORTED_LOCALES = ("de", "none")

# Time adjustment limits, in minutes
MIN_TIME_ADJUST = -12 * 60
MAX_TIME_ADJUST = 24 * 60


@dataclass
class BridgeConfig:
    """
    Configuration for a DisplayBridge.

    Attributes:
        width: Initial display width in pixels (default: 640)
        height: Initial display height in pixels (default: 480)
        cursor_color: RGB color of opaque cursor pixels (default: black)
        keyboard_locale: Remap table applied to typed characters ("de" or "none")
        key_buffer_capacity: Capacity of the pressed-key and recent-char sets
        optimize_refresh: Copy only changed lines (False copies full frames)
        time_adjust_minutes: Offset added to absolute event timestamps
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # DISPLAY
    # ═══════════════════════════════════════════════════════════════════════════

    width: int = 640
    height: int = 480
    cursor_color: Tuple[int, int, int] = (0, 0, 0)
    optimize_refresh: bool = True

    # ═══════════════════════════════════════════════════════════════════════════
    # INPUT
    # ═══════════════════════════════════════════════════════════════════════════

    keyboard_locale: str = "de"
    key_buffer_capacity: int = 32
    time_adjust_minutes: int = 0

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """
        Create BridgeConfig from environment variables.

        Environment variables (all optional):
            ST80_BRIDGE_WIDTH: Initial display width (integer)
            ST80_BRIDGE_HEIGHT: Initial display height (integer)
            ST80_BRIDGE_CURSOR_COLOR: Cursor color as "r,g,b"
            ST80_BRIDGE_KEYBOARD_LOCALE: "de" or "none"
            ST80_BRIDGE_KEY_BUFFER: Key buffer capacity (integer)
            ST80_BRIDGE_OPTIMIZE_REFRESH: "0" to always copy full frames
            ST80_BRIDGE_TIME_ADJUST: Timestamp adjustment in minutes

        Returns:
            BridgeConfig with values from environment variables
        """
        config = cls()

        if width := os.environ.get("ST80_BRIDGE_WIDTH"):
            try:
                config.width = int(width)
            except ValueError:
                pass  # Ignore invalid values

        if height := os.environ.get("ST80_BRIDGE_HEIGHT"):
            try:
                config.height = int(height)
            except ValueError:
                pass

        if color := os.environ.get("ST80_BRIDGE_CURSOR_COLOR"):
            try:
                r, g, b = (int(part) for part in color.split(","))
                config.cursor_color = (r, g, b)
            except ValueError:
                pass

        if locale := os.environ.get("ST80_BRIDGE_KEYBOARD_LOCALE"):
            config.keyboard_locale = locale.strip().lower()

        if capacity := os.environ.get("ST80_BRIDGE_KEY_BUFFER"):
            try:
                config.key_buffer_capacity = int(capacity)
            except ValueError:
                pass

        if optimize := os.environ.get("ST80_BRIDGE_OPTIMIZE_REFRESH"):
            config.optimize_refresh = optimize.strip().lower() not in ("0", "false", "no", "off")

        if adjust := os.environ.get("ST80_BRIDGE_TIME_ADJUST"):
            try:
                config.time_adjust_minutes = int(adjust)
            except ValueError:
                pass

        return config

    def validate(self) -> "BridgeConfig":
        """
        Check the configuration for impossible values.

        Returns:
            self, so calls can be chained

        Raises:
            ConfigError: If any field holds an unusable value
        """
        if self.width < 1:
            raise ConfigError("width", self.width, "must be positive")
        if self.height < 1:
            raise ConfigError("height", self.height, "must be positive")
        if len(self.cursor_color) != 3 or any(not 0 <= c <= 255 for c in self.cursor_color):
            raise ConfigError("cursor_color", self.cursor_color, "expected three components in 0..255")
        if self.keyboard_locale not in SUPPORTED_LOCALES:
            raise ConfigError(
                "keyboard_locale",
                self.keyboard_locale,
                f"expected one of {', '.join(SUPPORTED_LOCALES)}",
            )
        if self.key_buffer_capacity < 1:
            raise ConfigError("key_buffer_capacity", self.key_buffer_capacity, "must be at least 1")
        return self

    @property
    def clamped_time_adjust_minutes(self) -> int:
        """Time adjustment limited to the range the VM clock accepts."""
        return max(MIN_TIME_ADJUST, min(MAX_TIME_ADJUST, self.time_adjust_minutes))
