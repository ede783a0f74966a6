"""
Display Bridge - Main Orchestrator
==================================

This module provides the `DisplayBridge` class wiring the display and input
components between a Smalltalk-80 VM and a host surface:

- VM side: `copy_display_content` / `refresh` pull changed scan lines,
  `register_display` schedules a full-frame copy, `set_cursor` changes
  the pointer shape
- host side: key and pointer notifications are decoded into VM events
- render loop: `render_frame` presents the bitmap when a redraw is pending

No host notification may take the event loop down. Every entry point is
guarded: an unexpected exception is logged and counted, and the call
returns its neutral value, so the next frame and the next keystroke are
handled normally.

Example usage:
    >>> from st80_bridge import DisplayBridge, BridgeConfig
    >>> bridge = DisplayBridge(BridgeConfig(width=640, height=480))
    >>> bridge.key_typed(ord("x"))
    >>> bridge.sink.events[-1].value
    120

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import functools
import logging
from typing import Any, Callable, Optional, Sequence, TypeVar

from st80_bridge.config import BridgeConfig
from st80_bridge.display.cursor import CursorCache
from st80_bridge.display.framebuffer import DirtyTracker, FramebufferSync
from st80_bridge.display.surface import HostSurface, ImageSurface
from st80_bridge.events import EventRecorder, EventWordQueue, VmEventSink
from st80_bridge.input.keyboard import KeyTranslator
from st80_bridge.input.pointer import PointerTranslator

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _guarded(default: Any = None) -> Callable[[F], F]:
    """
    Keep exceptions from escaping a host-facing entry point.

    The exception is logged with its traceback and counted in
    `DisplayBridge.errors`; the call then returns `default`.
    """
    def decorate(method: F) -> F:
        @functools.wraps(method)
        def wrapper(self: "DisplayBridge", *args: Any, **kwargs: Any) -> Any:
            try:
                return method(self, *args, **kwargs)
            except Exception:
                self.errors += 1
                logger.exception("%s failed", method.__name__)
                return default
        return wrapper  # type: ignore[return-value]
    return decorate


class DisplayBridge:
    """
    Display and input bridge between a Smalltalk-80 VM and a host surface.

    Attributes:
        config: The BridgeConfig used to initialize this instance
        surface: The host surface rendered into
        sink: Receiver of the decoded VM events
        framebuffer: The FramebufferSync keeping the local bitmap
        cursors: The CursorCache of platform cursors
        keyboard: The KeyTranslator
        pointer: The PointerTranslator
        dirty: The DirtyTracker collecting VM drawing operations
        errors: Number of exceptions caught at the entry points
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        surface: Optional[HostSurface] = None,
        sink: Optional[VmEventSink] = None,
    ):
        """
        Initialize the bridge.

        Args:
            config: Bridge configuration (default: BridgeConfig())
            surface: Host surface (default: a headless ImageSurface of the
                configured size)
            sink: VM event receiver (default: an EventRecorder)

        Raises:
            ConfigError: If the configuration is invalid
        """
        self.config = (config or BridgeConfig()).validate()
        self.surface = surface or ImageSurface(self.config.width, self.config.height)
        self.sink = sink if sink is not None else EventRecorder()

        self.framebuffer = FramebufferSync(self.surface, self.config.width, self.config.height)
        self.cursors = CursorCache(self.surface, self.config.cursor_color)
        self.keyboard = KeyTranslator(
            self.sink,
            locale=self.config.keyboard_locale,
            capacity=self.config.key_buffer_capacity,
        )
        self.pointer = PointerTranslator(self.sink, self.surface)
        self.dirty = DirtyTracker(self.config.optimize_refresh)
        self.errors = 0

    @classmethod
    def with_event_queue(
        cls,
        config: Optional[BridgeConfig] = None,
        surface: Optional[HostSurface] = None,
        signal: Optional[Callable[[], None]] = None,
    ) -> "DisplayBridge":
        """
        Create a bridge feeding an EventWordQueue.

        The queue's absolute timestamps use the configured time adjustment,
        limited to the range the VM clock accepts.

        Args:
            config: Bridge configuration (default: BridgeConfig())
            surface: Host surface (default: headless ImageSurface)
            signal: Called for every word enqueued for the VM

        Returns:
            The bridge; the queue is available as `bridge.sink`
        """
        config = config or BridgeConfig()
        queue = EventWordQueue(
            signal=signal,
            time_adjust_minutes=config.clamped_time_adjust_minutes,
        )
        return cls(config, surface, queue)

    # =========================================================================
    # VM Side
    # =========================================================================

    @_guarded(default=False)
    def copy_display_content(
        self,
        mem: Optional[Sequence[int]],
        start: int,
        width: int,
        raster: int,
        height: int,
        first_line: int,
        last_line: int,
    ) -> bool:
        """
        Copy changed scan lines of the VM display.

        See FramebufferSync.sync for the arguments.

        Returns:
            True if a redraw was requested
        """
        return self.framebuffer.sync(mem, start, width, raster, height, first_line, last_line)

    def register_display(self) -> None:
        """
        The VM installed a (new) display form.

        The next refresh copies the whole frame, whatever was noted.
        """
        logger.debug("display registered, full refresh pending")
        self.dirty.invalidate()

    def note_display_change(self, top: int, lines: int) -> None:
        """Record a VM drawing operation on the display form."""
        self.dirty.note_change(top, lines)

    @_guarded(default=False)
    def refresh(
        self,
        mem: Optional[Sequence[int]],
        start: int,
        width: int,
        raster: int,
        height: int,
    ) -> bool:
        """
        Copy everything noted since the last refresh.

        While no display bitmap is available the noted lines are kept
        for a later refresh.

        Returns:
            True if a redraw was requested
        """
        if not self.framebuffer.has_source(mem, start, width, raster, height):
            return False
        dirty = self.dirty.take(height)
        return self.framebuffer.sync(
            mem, start, width, raster, height, dirty.first_line, dirty.last_line
        )

    @_guarded()
    def set_cursor(self, rows: Sequence[int], hotspot_x: int, hotspot_y: int) -> Any:
        """
        Change the pointer shape.

        Returns:
            The platform cursor handle now active (None if the surface failed)
        """
        return self.cursors.apply_cursor(rows, hotspot_x, hotspot_y)

    # =========================================================================
    # Render Loop
    # =========================================================================

    @_guarded(default=False)
    def render_frame(self) -> bool:
        """
        Present the bitmap if a redraw is pending.

        Returns:
            True if a frame was presented
        """
        if not self.framebuffer.take_redraw_request():
            return False
        self.surface.present(self.framebuffer.to_image())
        return True

    # =========================================================================
    # Host Keyboard
    # =========================================================================

    @_guarded()
    def key_pressed(self, code: int, char: int, key_code: Optional[int] = None) -> None:
        self.keyboard.key_pressed(code, char, key_code)

    @_guarded()
    def key_typed(self, char: int, code: int = 0) -> None:
        self.keyboard.key_typed(char, code)

    @_guarded()
    def key_released(self, code: int, char: int) -> None:
        self.keyboard.key_released(code, char)

    @_guarded()
    def focus_lost(self) -> None:
        """The display lost keyboard focus; held modifiers are released."""
        self.keyboard.reset()

    # =========================================================================
    # Host Pointer
    # =========================================================================

    @_guarded()
    def pointer_moved(self, x: int, y: int) -> None:
        self.pointer.pointer_moved(x, y)

    @_guarded()
    def pointer_dragged(self, x: int, y: int) -> None:
        self.pointer.pointer_dragged(x, y)

    @_guarded()
    def pointer_entered(self, x: int, y: int) -> None:
        self.pointer.pointer_entered(x, y)

    @_guarded()
    def pointer_exited(self, x: int, y: int) -> None:
        self.pointer.pointer_exited(x, y)

    @_guarded()
    def pointer_clicked(self, x: int, y: int) -> None:
        self.pointer.pointer_clicked(x, y)

    @_guarded()
    def pointer_pressed(self, button: int, x: int, y: int) -> None:
        self.pointer.pointer_pressed(button, x, y)

    @_guarded()
    def pointer_released(self, button: int, x: int, y: int) -> None:
        self.pointer.pointer_released(button, x, y)
