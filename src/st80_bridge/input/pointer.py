"""
Pointer Translator for the Smalltalk-80 VM
==========================================

Forwards host pointer activity as VM events:

- positions are clamped into the display and only forwarded when they
  change, which keeps high-frequency motion from flooding the VM queue
- button ordinals 1..3 (left, middle, right) become undecoded key events
  for the three mouse buttons; other buttons are ignored
- the position is always brought up to date before a button event, so the
  VM interprets the click at the current pointer location
- any pointer activity pulls keyboard focus to the display

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
from typing import Optional, Tuple

from st80_bridge.display.surface import HostSurface
from st80_bridge.events import K_MOUSE_LEFT, K_MOUSE_MIDDLE, K_MOUSE_RIGHT, VmEventSink

logger = logging.getLogger(__name__)

# Host button ordinal (1-based) -> VM key number
MOUSE_KEYS = (K_MOUSE_LEFT, K_MOUSE_MIDDLE, K_MOUSE_RIGHT)


def mouse_key_for(button: int) -> Optional[int]:
    """
    VM key number for a host button ordinal.

    Returns:
        The key number, or None for buttons beyond the third
    """
    index = button - 1
    if 0 <= index < len(MOUSE_KEYS):
        return MOUSE_KEYS[index]
    return None


class PointerTranslator:
    """
    Turns host pointer notifications into VM pointer and button events.

    Example:
        >>> from st80_bridge.display.surface import ImageSurface
        >>> from st80_bridge.events import EventRecorder
        >>> rec = EventRecorder()
        >>> pointer = PointerTranslator(rec, ImageSurface(640, 480))
        >>> pointer.pointer_moved(700, -5)
        >>> pointer.pointer_moved(650, -1)
        >>> [str(e) for e in rec.events]
        ['mouse_moved(639, 0)']
    """

    def __init__(self, sink: VmEventSink, surface: HostSurface):
        """
        Args:
            sink: Receiver of the VM events
            surface: Display surface giving the clamping bounds and focus
        """
        self._sink = sink
        self._surface = surface
        self._last: Optional[Tuple[int, int]] = None

    @property
    def last_position(self) -> Optional[Tuple[int, int]]:
        """Last position forwarded to the VM (None before the first move)."""
        return self._last

    def clamp(self, x: int, y: int) -> Tuple[int, int]:
        """Clamp a position into the current display."""
        max_x = max(self._surface.width - 1, 0)
        max_y = max(self._surface.height - 1, 0)
        return min(max(0, int(x)), max_x), min(max(0, int(y)), max_y)

    # =========================================================================
    # Host Notifications
    # =========================================================================

    def pointer_moved(self, x: int, y: int) -> None:
        """The pointer moved (buttons up)."""
        self._update_position(x, y)

    def pointer_dragged(self, x: int, y: int) -> None:
        """The pointer moved with a button held."""
        self._update_position(x, y)

    def pointer_entered(self, x: int, y: int) -> None:
        """The pointer entered the display."""
        self._update_position(x, y)

    def pointer_exited(self, x: int, y: int) -> None:
        """The pointer left the display; its last position is clamped to the edge."""
        self._update_position(x, y)

    def pointer_clicked(self, x: int, y: int) -> None:
        """The host synthesized a click; press and release carry the buttons."""
        self._update_position(x, y)

    def pointer_pressed(self, button: int, x: int, y: int) -> None:
        """
        A button went down.

        Args:
            button: Host button ordinal (1 = left, 2 = middle, 3 = right)
            x: Pointer x at the press
            y: Pointer y at the press
        """
        self._update_position(x, y)
        key = mouse_key_for(button)
        if key is not None:
            self._sink.undecoded_key_down(key)

    def pointer_released(self, button: int, x: int, y: int) -> None:
        """A button went up."""
        self._update_position(x, y)
        key = mouse_key_for(button)
        if key is not None:
            self._sink.undecoded_key_up(key)

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _update_position(self, x: int, y: int) -> None:
        if not self._surface.has_focus():
            self._surface.request_focus()

        position = self.clamp(x, y)
        if position != self._last:
            self._last = position
            self._sink.mouse_moved(*position)
