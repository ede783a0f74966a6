"""
Framebuffer Synchronization
===========================

Copies the Smalltalk-80 display bitmap from VM memory into a local
1-bit-per-pixel backing store.

The VM display is a Form whose bits live in the object memory as 16-bit
words, `raster` words per scan line, most significant bit leftmost. A set
VM bit is black. The local store uses the opposite polarity (a set bit is
background/white, as in a Pillow "1" image), so every word is inverted
on its way across.

Only the scan lines reported as changed (the dirty range) are copied. When
the VM display changes geometry or raster, the backing store is reallocated
and the whole frame is copied regardless of the range supplied by the
caller. The host is asked to relayout only when the pixel size changed.

The VM writes display memory from its own thread without coordinating
with the copy. A frame may therefore tear; the next refresh corrects it.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from PIL import Image

from st80_bridge.display.surface import HostSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirtyRange:
    """
    Inclusive range of changed scan lines (0-based).

    A range with first_line > last_line is empty.
    """
    first_line: int
    last_line: int

    @property
    def is_empty(self) -> bool:
        """True if no line is covered."""
        return self.first_line > self.last_line

    def clamped(self, height: int) -> "DirtyRange":
        """Restrict the range to the lines of a display of given height."""
        return DirtyRange(max(self.first_line, 0), min(self.last_line, height - 1))

    @classmethod
    def full(cls, height: int) -> "DirtyRange":
        """Range covering every line of a display."""
        return cls(0, height - 1)

    @classmethod
    def empty(cls) -> "DirtyRange":
        """Range covering nothing."""
        return cls(0, -1)


@dataclass
class Framebuffer:
    """
    Local packed bitmap.

    Attributes:
        width: Width in pixels
        height: Height in scan lines
        raster: Source words per scan line
        data: Packed bits, `stride` bytes per line, set bit = background
    """
    width: int
    height: int
    raster: int
    data: bytearray

    @classmethod
    def allocate(cls, width: int, height: int, raster: Optional[int] = None) -> "Framebuffer":
        """
        Create an all-background bitmap.

        Args:
            width: Width in pixels
            height: Height in scan lines
            raster: Source words per line (default: just enough for width)
        """
        if raster is None:
            raster = (width + 15) // 16
        words_per_line = max(raster, (width + 15) // 16)
        return cls(width, height, raster, bytearray(b"\xff" * (words_per_line * 2 * height)))

    @property
    def stride(self) -> int:
        """Bytes per scan line in the backing store."""
        return len(self.data) // self.height if self.height else 0

    def is_foreground(self, x: int, y: int) -> bool:
        """
        Check whether a pixel is set in VM terms (black).

        Raises:
            ValueError: If the position lies outside the bitmap
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise ValueError(f"Invalid position ({x}, {y})")
        byte = self.data[y * self.stride + (x >> 3)]
        return (byte & (0x80 >> (x & 7))) == 0

    def to_image(self) -> Image.Image:
        """Render the bitmap as a Pillow "1" image."""
        return Image.frombytes(
            "1", (self.width, self.height), bytes(self.data), "raw", "1", self.stride, 1
        )


class DirtyTracker:
    """
    Accumulates changed scan lines between two display refreshes.

    The VM reports every drawing operation on the display form with
    `note_change`; the refresh takes the accumulated range and resets it.
    A new tracker, and one that was invalidated, covers the full frame
    on its next take(), since the display may already hold content the
    host has never seen.

    Example:
        >>> tracker = DirtyTracker()
        >>> tracker.take(480)
        DirtyRange(first_line=0, last_line=479)
        >>> tracker.note_change(10, 5)
        >>> tracker.note_change(100, 2)
        >>> tracker.take(480)
        DirtyRange(first_line=10, last_line=102)
        >>> tracker.take(480).is_empty
        True
    """

    def __init__(self, optimize_refresh: bool = True):
        """
        Args:
            optimize_refresh: If False, every refresh covers the full frame
        """
        self.optimize_refresh = optimize_refresh
        self._top: Optional[int] = None
        self._bottom: Optional[int] = None
        self._full = True

    @property
    def has_changes(self) -> bool:
        """True if any line was reported since the last take()."""
        return self._full or self._top is not None

    def invalidate(self) -> None:
        """Make the next take() cover the full frame."""
        self._full = True

    def note_change(self, top: int, lines: int) -> None:
        """
        Record that `lines` scan lines starting at `top` were drawn.

        The bottom is recorded as top + lines, one line past the area,
        which errs on the side of copying too much.
        """
        top = max(top, 0)
        bottom = top + max(lines, 0)
        if self._top is None or top < self._top:
            self._top = top
        if self._bottom is None or bottom > self._bottom:
            self._bottom = bottom

    def take(self, height: int) -> DirtyRange:
        """
        Return the pending range for a display of given height and reset it.
        """
        if self._full or not self.optimize_refresh:
            result = DirtyRange.full(height)
        elif self._top is None or self._bottom is None:
            result = DirtyRange.empty()
        else:
            result = DirtyRange(self._top, self._bottom).clamped(height)
        self._top = None
        self._bottom = None
        self._full = False
        return result


class FramebufferSync:
    """
    Keeps a local Framebuffer in step with the VM display memory.

    Redraw is signalled in two ways: the surface's `request_redraw()` is
    called (asynchronously honoured by the host), and a pending flag is set
    that the host render loop can consume with `take_redraw_request()`.

    Example:
        >>> from st80_bridge.display.surface import ImageSurface
        >>> surface = ImageSurface(32, 2)
        >>> sync = FramebufferSync(surface)
        >>> mem = [0, 0xFFFF, 0x0000, 0x8000, 0x0001]
        >>> sync.sync(mem, 1, 32, 2, 2, 0, 1)
        True
        >>> sync.framebuffer.is_foreground(0, 0)
        True
    """

    def __init__(self, surface: HostSurface, width: Optional[int] = None, height: Optional[int] = None):
        """
        Initialize with the surface geometry (or an explicit one).

        Args:
            surface: Host surface receiving resize/relayout/redraw requests
            width: Initial width (default: surface width)
            height: Initial height (default: surface height)
        """
        self._surface = surface
        self.framebuffer = Framebuffer.allocate(
            width if width is not None else surface.width,
            height if height is not None else surface.height,
        )
        self._redraw_pending = False

    @property
    def width(self) -> int:
        """Current display width in pixels."""
        return self.framebuffer.width

    @property
    def height(self) -> int:
        """Current display height in scan lines."""
        return self.framebuffer.height

    @staticmethod
    def has_source(
        source_words: Optional[Sequence[int]],
        offset: int,
        width: int,
        raster: int,
        height: int,
    ) -> bool:
        """
        Check whether a display bitmap is available for copying.

        A missing buffer, an offset below 1 or a degenerate geometry all
        mean the VM has no display yet.
        """
        if source_words is None or offset < 1:
            return False
        return width >= 1 and height >= 1 and raster >= 1

    def take_redraw_request(self) -> bool:
        """Return and clear the pending redraw flag."""
        pending = self._redraw_pending
        self._redraw_pending = False
        return pending

    def sync(
        self,
        source_words: Optional[Sequence[int]],
        offset: int,
        width: int,
        raster: int,
        height: int,
        first_line: int,
        last_line: int,
    ) -> bool:
        """
        Copy changed scan lines from VM memory.

        Args:
            source_words: VM memory as 16-bit words (None if not available)
            offset: Index of the first display word in source_words
            width: Display width in pixels
            raster: Words per scan line
            height: Number of scan lines
            first_line: First changed line (0-based)
            last_line: Last changed line (inclusive)

        Returns:
            True if at least one word was copied (and a redraw requested)
        """
        if not self.has_source(source_words, offset, width, raster, height):
            return False

        fb = self.framebuffer
        if width != fb.width or height != fb.height or raster != fb.raster:
            self._resize(width, height, raster)
            fb = self.framebuffer
            first_line = 0
            last_line = height - 1

        dirty = DirtyRange(first_line, last_line).clamped(height)
        if dirty.is_empty:
            return False

        copied = self._copy_lines(source_words, offset, dirty)
        if copied == 0:
            return False

        self._redraw_pending = True
        self._surface.request_redraw()
        return True

    def to_image(self) -> Image.Image:
        """Render the current bitmap as a Pillow "1" image."""
        return self.framebuffer.to_image()

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _resize(self, width: int, height: int, raster: int) -> None:
        logger.info(
            "display geometry %dx%d (raster %d) -> %dx%d (raster %d)",
            self.framebuffer.width, self.framebuffer.height, self.framebuffer.raster,
            width, height, raster,
        )
        resized = (width, height) != (self.framebuffer.width, self.framebuffer.height)
        self.framebuffer = Framebuffer.allocate(width, height, raster)
        if resized:
            self._surface.resize(width, height)
            self._surface.request_relayout()

    def _copy_lines(self, source_words: Sequence[int], offset: int, dirty: DirtyRange) -> int:
        fb = self.framebuffer
        data = fb.data
        raster = fb.raster
        stride = fb.stride
        copied = 0

        for line in range(dirty.first_line, dirty.last_line + 1):
            src = offset + line * raster
            row = source_words[src:src + raster]
            dst = line * stride
            for word in row:
                inverted = ~word & 0xFFFF
                data[dst] = inverted >> 8
                data[dst + 1] = inverted & 0xFF
                dst += 2
            copied += len(row)

        logger.debug(
            "copied lines %d..%d (%d words)", dirty.first_line, dirty.last_line, copied
        )
        return copied
